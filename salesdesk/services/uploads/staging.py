"""
Staged uploads with preview handles.

Files picked on a form are stored in the staging storage until the form is
submitted or abandoned. Every staged file is tracked in the session as a
preview handle; a handle leaves the pending list at the moment it is released,
so its storage copy is deleted exactly once.
"""
import logging
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass

from django.conf import settings
from django.core.files.storage import FileSystemStorage
from django.utils.text import get_valid_filename

logger = logging.getLogger(__name__)

PENDING_UPLOADS_KEY = "pending-uploads"


def staging_storage():
    return FileSystemStorage(location=settings.UPLOAD_STAGING_ROOT)


@dataclass(frozen=True)
class PreviewHandle:
    id: str
    name: str
    size: int
    content_type: str
    storage_name: str

    @property
    def is_image(self):
        return self.content_type.startswith("image/")

    @property
    def size_label(self):
        if self.size < 1024:
            return f"{self.size} B"
        if self.size < 1024 * 1024:
            return f"{self.size / 1024:.1f} KB"
        return f"{self.size / (1024 * 1024):.1f} MB"


class PendingUploads:
    def __init__(self, session, form_key, storage=None):
        self.session = session
        self.form_key = form_key
        self.storage = storage or staging_storage()

    def _registry(self):
        return self.session.setdefault(PENDING_UPLOADS_KEY, {})

    def _entries(self):
        return list(self._registry().get(self.form_key, []))

    def _store(self, entries):
        registry = self._registry()
        if entries:
            registry[self.form_key] = entries
        else:
            registry.pop(self.form_key, None)
        self.session[PENDING_UPLOADS_KEY] = registry

    @property
    def handles(self):
        return [PreviewHandle(**entry) for entry in self._entries()]

    def __len__(self):
        return len(self._entries())

    def get(self, handle_id):
        for handle in self.handles:
            if handle.id == handle_id:
                return handle
        return None

    def add(self, files):
        entries = self._entries()
        acquired = []
        for upload in files:
            handle_id = uuid.uuid4().hex
            target = f"{get_valid_filename(self.form_key)}/{handle_id}-{get_valid_filename(upload.name)}"
            storage_name = self.storage.save(target, upload)
            handle = PreviewHandle(
                id=handle_id,
                name=upload.name,
                size=upload.size or 0,
                content_type=getattr(upload, "content_type", None) or "application/octet-stream",
                storage_name=storage_name,
            )
            entries.append(asdict(handle))
            acquired.append(handle)
            logger.debug("Staged %s for %s as %s", upload.name, self.form_key, storage_name)
        self._store(entries)
        return acquired

    def remove(self, handle_id):
        entries = self._entries()
        for index, entry in enumerate(entries):
            if entry["id"] == handle_id:
                del entries[index]
                self._store(entries)
                self._release(PreviewHandle(**entry))
                return True
        return False

    def teardown(self):
        entries = self._entries()
        self._store([])
        for entry in entries:
            self._release(PreviewHandle(**entry))
        if entries:
            logger.info("Released %s staged upload(s) for %s", len(entries), self.form_key)
        return len(entries)

    def _release(self, handle):
        self.storage.delete(handle.storage_name)

    def prune_missing(self):
        """Drop handles whose staged file is no longer in storage."""
        entries = self._entries()
        kept = [entry for entry in entries if self.storage.exists(entry["storage_name"])]
        dropped = len(entries) - len(kept)
        if dropped:
            self._store(kept)
            logger.warning("Dropped %s expired staged upload(s) for %s", dropped, self.form_key)
        return dropped

    @contextmanager
    def multipart(self, field_name):
        """Yield ``requests`` multipart tuples for every pending file still in storage."""
        self.prune_missing()
        opened = []
        parts = []
        try:
            for handle in self.handles:
                stream = self.storage.open(handle.storage_name, "rb")
                opened.append(stream)
                parts.append((field_name, (handle.name, stream, handle.content_type)))
            yield parts
        finally:
            for stream in opened:
                stream.close()


@contextmanager
def pending_uploads(session, form_key, storage=None):
    """Scope a form's pending uploads to the current request.

    An exception escaping the block tears the form down, so no staged file
    outlives a request that failed half-way.
    """
    pending = PendingUploads(session, form_key, storage=storage)
    try:
        yield pending
    except Exception:
        pending.teardown()
        raise


def release_all(session, storage=None):
    registry = session.get(PENDING_UPLOADS_KEY) or {}
    released = 0
    for form_key in list(registry.keys()):
        released += PendingUploads(session, form_key, storage=storage).teardown()
    session.pop(PENDING_UPLOADS_KEY, None)
    return released
