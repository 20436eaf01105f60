import argparse
import os
import sys

from src.booking.infra.db import SessionLocal
from src.booking.infra.uow import SqlAlchemyUoW
from src.booking.services.auth_service import AuthService
from src.booking.services.plans_service import PlansService


DEFAULT_PLANS = [
    {
        "name": "Starter",
        "description": "One session a week",
        "sessions_per_month": 4,
        "sessions_per_week": 1,
        "price": 400,
        "features": ["30-minute sessions", "Calendar invites"],
    },
    {
        "name": "Standard",
        "description": "Two sessions a week",
        "sessions_per_month": 8,
        "sessions_per_week": 2,
        "price": 720,
        "features": ["30-minute sessions", "Calendar invites", "Session notes"],
    },
    {
        "name": "Intensive",
        "description": "Up to four sessions a week",
        "sessions_per_month": 16,
        "sessions_per_week": 4,
        "price": 1280,
        "features": ["30-minute sessions", "Calendar invites", "Session notes", "Priority slots"],
    },
]


def main() -> None:
    ap = argparse.ArgumentParser(description="Seed the first admin and default subscription plans")
    ap.add_argument("--admin-email", default=os.getenv("SEED_ADMIN_EMAIL"))
    ap.add_argument("--admin-password", default=os.getenv("SEED_ADMIN_PASSWORD"))
    ap.add_argument("--skip-plans", action="store_true")
    args = ap.parse_args()

    db = SessionLocal()
    try:
        uow = SqlAlchemyUoW(db)

        admin = uow.users.get_by_email(args.admin_email.strip().lower()) if args.admin_email else None
        if admin is None and not uow.users.admin_exists():
            if not (args.admin_email and args.admin_password):
                raise RuntimeError("No admin yet: pass --admin-email and --admin-password")
            # OTP для регистрации админа не нужен
            _, admin = AuthService(uow, otp_store=None).register_admin(
                args.admin_email.strip().lower(), args.admin_password,
            )
            print(f"[ADMIN] created id={admin.id} email={admin.email}")

        if args.skip_plans:
            return

        plans = PlansService(uow)
        for fields in DEFAULT_PLANS:
            if uow.plans.get_by_name(fields["name"]):
                print(f"[SKIP] plan {fields['name']!r} already exists")
                continue
            plan = plans.create_plan(created_by=admin.id if admin else None, **fields)
            print(f"[PLAN] {plan.name}: {plan.sessions_per_month}/month, {plan.price} {plan.currency}")

    finally:
        db.close()


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        sys.exit(1)
