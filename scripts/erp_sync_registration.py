import argparse
import sys

from app.db import get_session
from app.logging import configure_logging
from app.services.erp.client import build_client
from app.services.erp.config import ERPConfig
from app.services.erp.errors import ConfigurationError, ERPError
from app.services.erp.sync import RegistrationSync


def cmd_auth(config: ERPConfig) -> int:
    client = build_client(config)
    try:
        token = client.authenticator.authenticate()
    finally:
        client.close()
    print(f"authenticated: token stored in {config.token_file} (length {len(token)})")
    return 0


def cmd_search(service: RegistrationSync, tax_id: str) -> int:
    record = service.search_customer(tax_id)
    if record is None:
        print(f"{tax_id}: not found in any customer type")
        return 1
    print(f"{record.tax_id}: id={record.external_id} type={record.type_code} name={record.legal_name}")
    return 0


def cmd_sync(service: RegistrationSync, tax_id: str, registration_id: int | None) -> int:
    report = service.register_company(tax_id, registration_id=registration_id)
    print(f"{report.tax_id}: {report.status.value} id={report.external_id} action={report.action}")
    if report.message:
        print(f"  {report.message}")
    for warning in report.warnings:
        print(f"  warning: {warning}")
    return 1 if report.has_errors else 0


def main():
    parser = argparse.ArgumentParser(description="Authenticate, search, or sync client registrations with the ERP.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("auth", help="Exchange credentials for a fresh token.")

    search = subparsers.add_parser("search", help="Probe every customer type for a tax id.")
    search.add_argument("tax_id")

    sync = subparsers.add_parser("sync", help="Register a company in the ERP and save the binding.")
    sync.add_argument("tax_id")
    sync.add_argument("--registration-id", type=int, help="Local client registration row to update.")

    parser.add_argument("--log-level", help="Override LOG_LEVEL.")
    args = parser.parse_args()

    configure_logging(args.log_level)
    config = ERPConfig.from_settings()

    try:
        if args.command == "auth":
            sys.exit(cmd_auth(config))

        db = get_session()
        try:
            with RegistrationSync(db, config=config) as service:
                if args.command == "search":
                    code = cmd_search(service, args.tax_id)
                else:
                    code = cmd_sync(service, args.tax_id, args.registration_id)
        finally:
            db.close()
    except ConfigurationError as exc:
        print(f"not configured: {exc.message}", file=sys.stderr)
        sys.exit(2)
    except ERPError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
