import asyncio
import sys
import os

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from studio.db.session import engine, session_scope
from studio.models.user import User
from studio.core.security import get_password_hash
from studio.services.auth_service import get_user_by_email


async def create_admin(email, full_name, password):
    try:
        async with session_scope() as session:
            user = await get_user_by_email(session, email)
            if user:
                user.role = "admin"
                user.is_blocked = False
                print(f"Success: '{email}' promoted to admin.")
                return
            session.add(User(
                email=email.lower(),
                full_name=full_name,
                password_hash=get_password_hash(password),
                role="admin",
            ))
        print("Success: Admin created!")
        print(f"Email: {email}")
    finally:
        await engine.dispose()

if __name__ == "__main__":
    if len(sys.argv) < 4:
        print("Usage: python scripts/create_admin.py <email> <full_name> <password>")
        sys.exit(1)

    asyncio.run(create_admin(sys.argv[1], sys.argv[2], sys.argv[3]))
