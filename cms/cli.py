"""
cms/cli.py -- Maintenance commands for the data directory.

Usage::

    python -m cms.cli health            # full health report (JSON)
    python -m cms.cli health --text     # same, as readable text
    python -m cms.cli check places      # integrity of one document
    python -m cms.cli recover places    # restore the newest backup
    python -m cms.cli init              # create any missing documents
    python -m cms.cli backups [places]  # list snapshots, newest first

``--data-dir`` and ``--language`` override the environment settings.
Exit status is 0 on success and 1 when the command reports a failure.
"""

from __future__ import annotations

import argparse
import logging
import sys

from cms.config import Settings
from cms.logging_setup import setup_logging
from datastore.health import MANAGED_DOCUMENTS
from datastore.repository import DataRepository
from datastore.utils import dump_json

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cms.cli",
        description="Tourism CMS data maintenance",
    )
    parser.add_argument("--data-dir", help="Directory holding the JSON documents")
    parser.add_argument("--language", choices=("th", "en"), help="Language of messages")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level")

    sub = parser.add_subparsers(dest="command", required=True)

    health = sub.add_parser("health", help="Check every managed document")
    health.add_argument("--text", action="store_true", help="Print a readable report")

    check = sub.add_parser("check", help="Check one document")
    check.add_argument("name", help="Document name, e.g. places or places.json")

    recover = sub.add_parser("recover", help="Restore a document from its newest backup")
    recover.add_argument("name")

    sub.add_parser("init", help="Create missing documents with default content")

    backups = sub.add_parser("backups", help="List backups, newest first")
    backups.add_argument("name", nargs="?", default=None)

    return parser


def _repository(args, environ=None) -> DataRepository:
    settings = Settings.from_env(environ)
    if args.data_dir:
        settings.data_dir = args.data_dir
    if args.language:
        settings.language = args.language
    return DataRepository.from_settings(settings)


def _emit(payload, out) -> None:
    out.write(dump_json(payload))
    out.write("\n")


def main(argv=None, out=None, environ=None) -> int:
    """Run one command.  Returns the process exit status."""
    out = out or sys.stdout
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "WARNING")

    repo = _repository(args, environ)
    logger.debug("Using data directory %s", repo.data_dir)

    if args.command == "health":
        report = repo.health_check()
        if args.text and "overall" in report:
            out.write(repo.health.format_for_user(report))
            out.write("\n")
        else:
            _emit(report, out)
        return 0 if report.get("overall") == "healthy" else 1

    if args.command == "check":
        report = repo.check_file(args.name)
        _emit(report, out)
        return 0 if report.get("validStructure") else 1

    if args.command == "recover":
        result = repo.recover_file(args.name)
        _emit(result, out)
        return 0 if result["success"] else 1

    if args.command == "init":
        results = {}
        status = 0
        for filename in MANAGED_DOCUMENTS:
            result = repo.read_document(filename)
            results[filename] = {
                key: result[key]
                for key in ("success", "message", "error", "created", "recovered")
                if key in result
            }
            if not result["success"]:
                status = 1
        _emit(results, out)
        return status

    if args.command == "backups":
        _emit(repo.list_backups(args.name), out)
        return 0

    return 2


if __name__ == "__main__":
    sys.exit(main())
