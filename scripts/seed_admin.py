"""
Seed the local database with a company and an administrator account.

Usage:
  python scripts/seed_admin.py --email admin@example.com --password secret123 --company "Acme Trading"

This script is idempotent: running it again leaves an existing company (by name)
and user (by email) in place, only promoting the user to admin.
"""

import argparse

from erphub.db import SessionLocal, Base, engine
from erphub.models.models import Company, User
from erphub.auth.security import get_password_hash


def ensure_company(session, name: str) -> Company:
    company = session.query(Company).filter(Company.name == name).first()
    if company:
        return company
    company = Company(name=name)
    session.add(company)
    session.flush()
    return company


def ensure_admin(session, email: str, password: str, company: Company,
                 first_name: str = "System", last_name: str = "Admin") -> User:
    email = email.strip().lower()
    user = session.query(User).filter(User.email == email).first()
    if user:
        user.role = "admin"
        if user.company_id is None:
            user.company_id = company.id
        session.add(user)
        return user
    user = User(
        email=email,
        password_hash=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role="admin",
        company_id=company.id,
    )
    session.add(user)
    session.flush()
    return user


def main():
    parser = argparse.ArgumentParser(description="Create the first company and admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--company", default="ERP Hub")
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        company = ensure_company(session, args.company)
        user = ensure_admin(session, args.email, args.password, company)
        session.commit()
        print(f"Admin ready: {user.email} (company: {company.name})")
    finally:
        session.close()


if __name__ == "__main__":
    main()
