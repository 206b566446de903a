"""
Seed a demo company with an admin, a manager, an employee and one pending expense.

Usage: python scripts/seed_demo.py
"""
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from expensehub import create_app
from expensehub.seed import DEMO_USERS, seed_demo_data


def main():
    app = create_app()

    with app.app_context():
        result = seed_demo_data()
        if not result["created"]:
            print(f"Demo company already exists (id={result['company'].id}), nothing to do")
            return

        print(f"Created company: {result['company'].name}")
        print(f"Created project: {result['project'].name}")
        print("\nLogin credentials:")
        for _, email, password, role in DEMO_USERS:
            print(f"  {role.value.title():<9} {email} / {password}")


if __name__ == "__main__":
    main()
