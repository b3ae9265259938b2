# ==============================================
# CLI: Command Line Entry Point
# ==============================================
#
# PURPOSE:
#   Run the DML exercises against the configured record store.
#
# COMMANDS:
# ---------
# 1. Link contacts to new accounts by match key:
#    python -m crm_dml.cli link --accounts "Alpha A" "Beta B" --contacts "Smith A" "Nobody Z"
#
# 2. Bulk insert then delete demo leads / cases:
#    python -m crm_dml.cli leads --count 25
#    python -m crm_dml.cli cases --count 25
#
# 3. Load records from an HTTP endpoint:
#    python -m crm_dml.cli load --type Lead --url http://127.0.0.1:8000/records
#
# 4. Show row counts per record type:
#    python -m crm_dml.cli status
#
# Every command accepts --backend memory|mysql|mongodb to override
# RECORD_STORE_BACKEND.
#
# ==============================================

import argparse
import sys
from typing import Optional

import pymysql
import requests
from pymongo.errors import ConnectionFailure, OperationFailure

from crm_dml.config import BACKENDS, get_config
from crm_dml.dml import DmlExercises
from crm_dml.errors import DmlError
from crm_dml.loader import load_records
from crm_dml.records import RECORD_TYPES, Contact, record_type_for
from crm_dml.storage import RecordStore, open_store


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crm-dml", description="CRM DML exercises")
    parser.add_argument("--backend", choices=BACKENDS, help="record store backend")
    commands = parser.add_subparsers(dest="command", required=True)

    link = commands.add_parser("link", help="link contacts to new accounts by match key")
    link.add_argument("--accounts", nargs="*", default=[], metavar="NAME")
    link.add_argument("--contacts", nargs="*", default=[], metavar="LAST_NAME")

    for name in ("leads", "cases"):
        demo = commands.add_parser(name, help=f"insert then delete a batch of {name}")
        demo.add_argument("--count", type=int, default=10)

    load = commands.add_parser("load", help="load records from an HTTP endpoint")
    load.add_argument("--type", dest="record_type", required=True, choices=sorted(RECORD_TYPES))
    load.add_argument("--url", help="defaults to RECORD_SOURCE_URL")

    commands.add_parser("status", help="row counts per record type")
    return parser


def cmd_link(store: RecordStore, args) -> None:
    contacts = [Contact(last_name=last_name) for last_name in args.contacts]
    result = DmlExercises(store).link_contacts_to_accounts(contacts, args.accounts)
    names_by_id = {account.id: account.name for account in result.parents}
    print(f"✓ Created {len(result.parents)} accounts, upserted {len(result.children)} contacts")
    for contact in result.children:
        if result.is_linked(contact):
            print(f"   {contact.last_name} → {names_by_id[contact.account_id]} ({contact.account_id})")
        else:
            print(f"   {contact.last_name} → (no match)")


def cmd_leads(store: RecordStore, args) -> None:
    specs = [{"last_name": f"Lead {n}", "company": f"Company {n}"} for n in range(1, args.count + 1)]
    deleted = DmlExercises(store).insert_and_delete_leads(specs)
    print(f"✓ Inserted and deleted {deleted} leads")


def cmd_cases(store: RecordStore, args) -> None:
    specs = [{"subject": f"Case {n}"} for n in range(1, args.count + 1)]
    deleted = DmlExercises(store).insert_and_delete_cases(specs)
    print(f"✓ Inserted and deleted {deleted} cases")


def cmd_load(store: RecordStore, args) -> None:
    url = args.url or get_config().record_source_url
    records = load_records(store, url, record_type_for(args.record_type))
    print(f"✓ Loaded {len(records)} {args.record_type} records from {url}")


def cmd_status(store: RecordStore, args) -> None:
    print(f"Record store: {store.backend_name}")
    for name, record_type in RECORD_TYPES.items():
        print(f"   {name:<12} {store.count(record_type)}")


COMMANDS = {
    "link": cmd_link,
    "leads": cmd_leads,
    "cases": cmd_cases,
    "load": cmd_load,
    "status": cmd_status,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        with open_store(get_config(), backend=args.backend) as store:
            COMMANDS[args.command](store, args)
    except DmlError as e:
        print(f"✗ {type(e).__name__}: {e}")
        return 1
    except requests.RequestException as e:
        print(f"✗ API error: {e}")
        return 1
    except (pymysql.err.OperationalError, ConnectionFailure, OperationFailure) as e:
        print(f"✗ Database unavailable: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
