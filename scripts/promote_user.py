#!/usr/bin/env python3
"""Change a user's role by phone number.

The first SUPER_ADMIN has to be created this way, after the account has
signed up through the normal OTP flow:

    python scripts/promote_user.py 09120000000 SUPER_ADMIN
"""
import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from storefront.core.database import AsyncSessionLocal  # noqa: E402
from storefront.core.phone import normalize_phone  # noqa: E402
from storefront.models.user import Role  # noqa: E402
from storefront.services.user import UserService  # noqa: E402


async def promote(phone: str, role: Role) -> int:
    phone_number = normalize_phone(phone)
    async with AsyncSessionLocal() as db:
        service = UserService(db)
        user = await service.get_by_phone(phone_number)
        if user is None:
            print(f"No user with phone number {phone_number}", file=sys.stderr)
            return 1
        await service.update_role(user, role)
        print(f"User {user.id} ({phone_number}) is now {role.value}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("phone")
    parser.add_argument("role", choices=[role.value for role in Role])
    args = parser.parse_args()
    return asyncio.run(promote(args.phone, Role(args.role)))


if __name__ == "__main__":
    sys.exit(main())
