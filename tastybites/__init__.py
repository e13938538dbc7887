"""
                Tasty Bites Ordering Backend

Multi-branch food ordering service: customers browse the menu, build a
cart, place orders and track them; branch staff progress the orders of
their assigned branch through a live dashboard.

Author: Your Name
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
