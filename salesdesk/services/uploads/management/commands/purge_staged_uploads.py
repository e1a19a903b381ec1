import logging
import os
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from services.uploads.staging import staging_storage

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Delete staged uploads older than the cutoff. Covers forms that were "
        "abandoned without being submitted or cancelled."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--max-age-hours",
            type=int,
            default=getattr(settings, "UPLOAD_STAGING_MAX_AGE_HOURS", 24),
            help="Staged files older than this many hours are removed (default: 24).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List what would be removed without deleting anything.",
        )

    def handle(self, *args, **options):
        storage = staging_storage()
        cutoff = timezone.now() - timedelta(hours=options["max_age_hours"])
        removed = 0

        for name in self._walk(storage, ""):
            if storage.get_modified_time(name) >= cutoff:
                continue
            if options["dry_run"]:
                self.stdout.write(f"Would remove {name}")
            else:
                storage.delete(name)
                logger.info("Purged abandoned staged upload %s", name)
            removed += 1

        verb = "Would remove" if options["dry_run"] else "Removed"
        self.stdout.write(self.style.SUCCESS(f"{verb} {removed} staged upload(s)."))

    def _walk(self, storage, directory):
        if not storage.exists(directory or "."):
            return
        directories, files = storage.listdir(directory or ".")
        for filename in files:
            yield os.path.join(directory, filename) if directory else filename
        for subdirectory in directories:
            yield from self._walk(storage, os.path.join(directory, subdirectory) if directory else subdirectory)
