"""
Staff Assignment Script

Operator tool for bootstrapping a deployment: promotes an existing
account to staff of a branch, or grants it the admin role so it can
use POST /api/admin/staff from then on.
Run from project root:

    python scripts/assign_staff.py jane@example.com --branch "Downtown Branch"
    python scripts/assign_staff.py boss@example.com --admin

Author: Your Name
Version: 1.0.0
"""

import argparse
import asyncio
import sys
from decimal import Decimal
from typing import Optional

from tastybites.core.config import setup_logging
from tastybites.core.errors import OrderingError
from tastybites.database import async_session_maker, init_db
from tastybites.enums import AppRole
from tastybites.services import store
from tastybites.services.policies import AccessContext

# The operator acts with admin rights without holding an account
OPERATOR = AccessContext(roles=frozenset({AppRole.ADMIN}))


async def assign(
    email: str,
    branch_name: Optional[str],
    make_admin: bool,
    salary: Optional[Decimal],
    working_hours: Optional[int],
) -> bool:
    await init_db()

    async with async_session_maker() as db:
        try:
            profile = await store.find_profile_by_email(db, OPERATOR, email)
        except OrderingError as e:
            print(f"❌ {e.message}. The user must sign up first.")
            return False

        if make_admin:
            await store.grant_role(db, profile.id, AppRole.ADMIN)
            await db.commit()
            print(f"✅ {profile.name} <{profile.email}> is now an admin")

        if branch_name:
            branches = {b.name.lower(): b for b in await store.list_branches(db, OPERATOR)}
            branch = branches.get(branch_name.strip().lower())
            if branch is None:
                print(f"❌ Unknown branch '{branch_name}'. Options: {sorted(b.name for b in branches.values())}")
                return False

            try:
                await store.assign_staff(
                    db, OPERATOR, profile.id, branch.id,
                    salary=salary, working_hours=working_hours,
                )
            except OrderingError as e:
                print(f"❌ {e.message}")
                return False
            print(f"✅ {profile.name} <{profile.email}> now works at {branch.name}")

    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Assign staff or admin roles")
    parser.add_argument("email", help="Email of an existing account")
    parser.add_argument("--branch", help="Branch name to assign the user to")
    parser.add_argument("--admin", action="store_true", help="Grant the admin role")
    parser.add_argument("--salary", type=Decimal, default=None)
    parser.add_argument("--hours", type=int, default=None, help="Weekly working hours")
    args = parser.parse_args()

    if not args.branch and not args.admin:
        parser.error("nothing to do: pass --branch and/or --admin")

    setup_logging()
    ok = asyncio.run(assign(args.email, args.branch, args.admin, args.salary, args.hours))
    sys.exit(0 if ok else 1)
