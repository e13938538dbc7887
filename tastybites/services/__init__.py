"""
                        Services Module

Collaborators behind the ordering core. Auth and the change feed each
have an in-process implementation (development) and a hosted one
(staging/production), selected by ENV_MODE.

Services:
    - auth: Sign-up, sign-in and session resolution
    - realtime: Change feed for orders and ordered items
    - policies: Per-row access rules
    - store: Structured reads and writes against the database
    - live: Re-fetch-on-change views
"""
