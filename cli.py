import argparse
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from api.config import LOG_LEVEL
from core.logging_setup import setup_console_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Driving theory quiz tools")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Validate a corpus JSON file")
    check.add_argument("corpus", type=Path, help="Path to the corpus JSON file")
    check.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Write the exam structure with question counts to this file",
    )

    load = subparsers.add_parser(
        "import", help="Replace the questions table with a corpus JSON file"
    )
    load.add_argument("corpus", type=Path, help="Path to the corpus JSON file")

    add_code = subparsers.add_parser("add-code", help="Create a training code")
    add_code.add_argument("code", type=str, help="Code users will redeem")
    add_code.add_argument("--description", type=str, default=None)
    add_code.add_argument(
        "--max-uses", type=int, default=None, help="Unlimited when omitted"
    )
    add_code.add_argument(
        "--expires-days", type=int, default=None, help="Never expires when omitted"
    )

    parser.add_argument(
        "--quiet", action="store_true", help="Only log warnings and errors"
    )
    return parser.parse_args(argv)


def run_check(args: argparse.Namespace) -> int:
    from api.utils import json_dump, write_json_file
    from corpus import corpus_structure, count_questions, load_corpus_file

    corpus = load_corpus_file(args.corpus)
    structure = corpus_structure(corpus)
    if args.summary is not None:
        write_json_file(args.summary, structure)
        logger.info("Wrote summary to %s", args.summary)
    else:
        print(json_dump(structure))
    print(f"{count_questions(corpus)} usable question(s)")
    return 0 if corpus else 1


def run_import(args: argparse.Namespace) -> int:
    from api.database import SessionLocal, init_db
    from api.services.corpus_service import import_corpus
    from corpus import load_corpus_file

    corpus = load_corpus_file(args.corpus)
    if not corpus:
        logger.error("Corpus %s has no usable questions, nothing imported", args.corpus)
        return 1

    init_db()
    db = SessionLocal()
    try:
        imported = import_corpus(db, corpus)
    finally:
        db.close()
    print(f"Imported {imported} question(s)")
    return 0


def run_add_code(args: argparse.Namespace) -> int:
    from api.database import SessionLocal, init_db
    from api.services.training_service import create_code, get_code

    expires_at = None
    if args.expires_days is not None:
        expires_at = datetime.now(timezone.utc) + timedelta(days=args.expires_days)

    init_db()
    db = SessionLocal()
    try:
        if get_code(db, args.code) is not None:
            logger.error("Training code %s already exists", args.code)
            return 1
        training_code = create_code(
            db,
            args.code,
            description=args.description,
            max_uses=args.max_uses,
            expires_at=expires_at,
        )
    finally:
        db.close()
    print(f"Created training code {training_code.code}")
    return 0


COMMANDS = {
    "check": run_check,
    "import": run_import,
    "add-code": run_add_code,
}


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_console_logging(logging.WARNING if args.quiet else LOG_LEVEL)
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
