"""Queue maintenance CLI — ``triage-queue``.

Provides a standalone command that opens the queue document directly,
without the HTTP server.  Intended for operators recovering from a bad
write or checking the queue from a shell.

Examples::

    # Patient count, id counter and backup presence
    triage-queue status

    # Print the queue in urgency order
    triage-queue show

    # Restore the primary document from the backup copy
    triage-queue recover

    # Operate on a specific file instead of $TRIAGE_DATA_FILE
    triage-queue --data-file /srv/triage/patients.json status
"""

from __future__ import annotations

import argparse
import logging
import sys

from triage_engine.errors import RecoveryError
from triage_engine.view import QueueView
from triage_store.repository import QueueRepository
from triage_store.storage import JsonFileStorage

logger = logging.getLogger(__name__)


def show_status(repository: QueueRepository) -> int:
    status = repository.status()
    print(f"Data file:     {status.data_file}")
    print(f"Patients:      {status.patient_count}")
    print(f"Last id:       {status.last_id}")
    print(f"Backup exists: {'yes' if status.backup_exists else 'no'}")
    return 0


def show_queue(repository: QueueRepository) -> int:
    view = QueueView(repository.load_all())
    entries = view.ranked()
    if not entries:
        print("Queue is empty")
        return 0

    for entry in entries:
        p = entry.patient
        print(
            f"{entry.position:>3}. {p.id}  {entry.label:<6}  {p.status.value:<11}  "
            f"{p.arrival_time:%Y-%m-%d %H:%M}  {p.chief_complaint}"
        )
    stats = view.stats()
    print(
        f"\nTotal: {stats.total}  Critical: {stats.critical}  "
        f"Avg wait: {stats.avg_wait} min"
    )
    return 0


def recover(repository: QueueRepository) -> int:
    try:
        state = repository.recover_from_backup()
    except RecoveryError as exc:
        logger.error("%s", exc)
        return 1
    print(f"Recovered {len(state.patients)} patients from backup (lastId={state.last_id})")
    return 0


_COMMANDS = {
    "status": show_status,
    "show": show_queue,
    "recover": recover,
}


def cli(argv: list[str] | None = None) -> None:
    """Console-script entry point: ``triage-queue``."""
    parser = argparse.ArgumentParser(
        prog="triage-queue",
        description="Inspect or recover the persisted triage queue.",
    )
    parser.add_argument(
        "command",
        choices=sorted(_COMMANDS),
        help="status: summary; show: urgency-ordered queue; recover: restore from backup",
    )
    parser.add_argument(
        "--data-file",
        default=None,
        help="Queue document path (default: $TRIAGE_DATA_FILE or data/patients.json)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    repository = QueueRepository(JsonFileStorage(args.data_file))
    sys.exit(_COMMANDS[args.command](repository))
