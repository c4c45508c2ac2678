#!/usr/bin/env python3
"""
Create an admin account, or promote an existing account to admin.

Usage: python create_admin.py <email> <password> ["Full Name Of Twenty Chars"]
"""
import sys

from storerating.core.config import settings
from storerating.core.database import Database
from storerating.core.roles import Role
from storerating.core.security import hash_password
from storerating.core.validators import check_password, normalize_email
from storerating.models.store import Store
from storerating.models.user import User


def create_admin(email: str, password: str, name: str) -> int:
    problems = check_password(password)
    if problems:
        print(f"✗ {problems[0]['message']}")
        return 1

    database = Database(settings)
    database.init_db()
    db = database.session()
    try:
        email = normalize_email(email)
        user = db.query(User).filter(User.email == email).first()
        if user:
            if db.query(Store).filter(Store.owner_id == user.id).first():
                print(f"✗ '{email}' still owns stores; reassign them first")
                return 1
            user.role = Role.admin.value
            user.password_hash = hash_password(password)
            action = "updated to admin role"
        else:
            user = User(name=name, email=email, address="", password_hash=hash_password(password), role=Role.admin.value)
            db.add(user)
            action = "created"
        db.commit()
        print(f"✓ Admin '{email}' {action}")
        return 0
    except Exception as e:
        db.rollback()
        print(f"✗ Error creating admin user: {e}")
        return 1
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(2)
    sys.exit(create_admin(sys.argv[1], sys.argv[2], sys.argv[3] if len(sys.argv) > 3 else settings.default_admin_name))
