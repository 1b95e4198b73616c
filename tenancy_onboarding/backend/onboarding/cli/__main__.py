# backend/onboarding/cli/__main__.py
from __future__ import annotations

import argparse

from onboarding.cli.seed_demo import seed_demo
from onboarding.db import init_db


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m onboarding.cli")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create all tables on the configured database")

    s = sub.add_parser("seed-demo", help="create a demo landlord, tenant and property")
    s.add_argument("--landlord-email", default="landlord@demo.local")
    s.add_argument("--tenant-email", default="tenant@demo.local")
    s.add_argument("--property-title", default="Demo Flat")
    s.add_argument("--property-location", default="12 Harbour Street")
    args = p.parse_args()

    if args.command == "init-db":
        init_db()
        print({"ok": True, "command": "init-db"})
        return

    init_db()
    out = seed_demo(
        landlord_email=args.landlord_email,
        tenant_email=args.tenant_email,
        property_title=args.property_title,
        property_location=args.property_location,
    )
    print(
        {
            "ok": True,
            "landlord_email": out.landlord_email,
            "tenant_email": out.tenant_email,
            "property_id": out.property_id,
            "landlord_token": out.landlord_token,
            "tenant_token": out.tenant_token,
        }
    )


if __name__ == "__main__":
    main()
