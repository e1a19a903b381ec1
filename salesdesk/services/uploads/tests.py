"""
Tests for staged uploads and their preview handles.
"""
import os
from dataclasses import replace
from datetime import timedelta
from io import StringIO

from django.core.files.storage import FileSystemStorage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import SimpleTestCase
from django.utils import timezone

from portal.roles import Role
from portal.testing import StagingDirMixin, login_as
from services.uploads.staging import (
    PENDING_UPLOADS_KEY,
    PendingUploads,
    PreviewHandle,
    pending_uploads,
    release_all,
)


class CountingStorage(FileSystemStorage):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.deleted = []

    def delete(self, name):
        self.deleted.append(name)
        super().delete(name)


def upload(name="doc.txt", content=b"hello", content_type="text/plain"):
    return SimpleUploadedFile(name, content, content_type=content_type)


class PendingUploadsTests(StagingDirMixin, SimpleTestCase):
    """Handle bookkeeping and release"""

    def setUp(self):
        super().setUp()
        self.storage = CountingStorage(location=self.staging_root)
        self.session = {}

    def pending(self, form_key="ticket-new_product"):
        return PendingUploads(self.session, form_key, storage=self.storage)

    def test_add_stages_files_and_records_handles(self):
        pending = self.pending()
        acquired = pending.add([upload("a.txt"), upload("b.png", b"\x89PNG", "image/png")])
        self.assertEqual(len(pending), 2)
        self.assertEqual([h.name for h in pending.handles], ["a.txt", "b.png"])
        self.assertTrue(pending.handles[1].is_image)
        for handle in acquired:
            self.assertTrue(self.storage.exists(handle.storage_name))
        self.assertIn("ticket-new_product", self.session[PENDING_UPLOADS_KEY])

    def test_remove_releases_one_handle(self):
        pending = self.pending()
        first, second = pending.add([upload("a.txt"), upload("b.txt")])
        self.assertTrue(pending.remove(first.id))
        self.assertFalse(pending.remove(first.id))
        self.assertEqual(self.storage.deleted, [first.storage_name])
        self.assertEqual([h.id for h in pending.handles], [second.id])

    def test_every_handle_is_released_exactly_once(self):
        pending = self.pending()
        handles = pending.add([upload("a.txt"), upload("b.txt"), upload("c.txt")])
        pending.remove(handles[0].id)
        self.assertEqual(pending.teardown(), 2)
        self.assertEqual(pending.teardown(), 0)
        release_all(self.session, storage=self.storage)
        self.assertEqual(sorted(self.storage.deleted), sorted(h.storage_name for h in handles))
        self.assertEqual(len(pending), 0)

    def test_forms_are_tracked_separately(self):
        tickets = self.pending("ticket-bulk_order")
        product = self.pending("product-new")
        tickets.add([upload("a.txt")])
        product.add([upload("b.txt")])
        tickets.teardown()
        self.assertEqual(len(product), 1)
        self.assertEqual(len(tickets), 0)

    def test_release_all_clears_every_form(self):
        self.pending("one").add([upload("a.txt")])
        self.pending("two").add([upload("b.txt"), upload("c.txt")])
        self.assertEqual(release_all(self.session, storage=self.storage), 3)
        self.assertNotIn(PENDING_UPLOADS_KEY, self.session)
        self.assertEqual(len(self.storage.deleted), 3)

    def test_exception_in_scope_tears_down(self):
        with self.assertRaises(RuntimeError):
            with pending_uploads(self.session, "response-1", storage=self.storage) as pending:
                pending.add([upload("a.txt")])
                raise RuntimeError("render failed")
        self.assertEqual(len(self.storage.deleted), 1)
        self.assertEqual(len(self.pending("response-1")), 0)

    def test_normal_exit_keeps_handles(self):
        with pending_uploads(self.session, "response-1", storage=self.storage) as pending:
            pending.add([upload("a.txt")])
        self.assertEqual(self.storage.deleted, [])
        self.assertEqual(len(self.pending("response-1")), 1)

    def test_multipart_yields_request_tuples(self):
        pending = self.pending()
        pending.add([upload("a.txt", b"alpha")])
        with pending.multipart("supporting_docs") as parts:
            field, (name, stream, content_type) = parts[0]
            self.assertEqual((field, name, content_type), ("supporting_docs", "a.txt", "text/plain"))
            self.assertEqual(stream.read(), b"alpha")
        self.assertTrue(stream.closed)

    def test_multipart_skips_files_gone_from_storage(self):
        pending = self.pending()
        purged, kept = pending.add([upload("a.txt", b"alpha"), upload("b.txt", b"beta")])
        os.remove(os.path.join(self.staging_root, purged.storage_name))
        with pending.multipart("supporting_docs") as parts:
            self.assertEqual([name for _, (name, _, _) in parts], ["b.txt"])
        self.assertEqual([h.id for h in pending.handles], [kept.id])
        self.assertEqual(self.storage.deleted, [])

    def test_size_label(self):
        handle = PreviewHandle(id="1", name="x", size=2048, content_type="text/plain", storage_name="x")
        self.assertEqual(handle.size_label, "2.0 KB")
        self.assertEqual(replace(handle, size=512).size_label, "512 B")
        self.assertEqual(replace(handle, size=3 * 1024 * 1024).size_label, "3.0 MB")


class PreviewViewTests(StagingDirMixin, SimpleTestCase):
    """Serving staged files back for previews"""

    def test_preview_requires_login(self):
        response = self.client.get("/uploads/ticket-new_product/abc")
        self.assertRedirects(response, "/login", fetch_redirect_response=False)

    def test_preview_serves_staged_file(self):
        login_as(self.client, Role.SALES)
        self.client.post(
            "/tickets/createticket/newproduct",
            {"action": "upload", "documents": upload("note.txt", b"preview me")},
        )
        handle = self.client.session[PENDING_UPLOADS_KEY]["ticket-new_product"][0]

        response = self.client.get(f"/uploads/ticket-new_product/{handle['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(b"".join(response.streaming_content), b"preview me")
        response.close()

    def test_unknown_handle_is_404(self):
        login_as(self.client, Role.SALES)
        response = self.client.get("/uploads/ticket-new_product/missing")
        self.assertEqual(response.status_code, 404)


class PurgeCommandTests(StagingDirMixin, SimpleTestCase):
    """Cleanup of abandoned staged files"""

    def stage(self, name, age_hours):
        path = os.path.join(self.staging_root, name)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as handle:
            handle.write(b"x")
        stamp = (timezone.now() - timedelta(hours=age_hours)).timestamp()
        os.utime(path, (stamp, stamp))
        return path

    def test_purges_only_old_files(self):
        old = self.stage("ticket-new_product/old.txt", 48)
        fresh = self.stage("ticket-new_product/fresh.txt", 1)
        out = StringIO()
        call_command("purge_staged_uploads", "--max-age-hours", "24", stdout=out)
        self.assertFalse(os.path.exists(old))
        self.assertTrue(os.path.exists(fresh))
        self.assertIn("Removed 1 staged upload(s).", out.getvalue())

    def test_dry_run_keeps_files(self):
        old = self.stage("product-new/old.png", 72)
        out = StringIO()
        call_command("purge_staged_uploads", "--dry-run", stdout=out)
        self.assertTrue(os.path.exists(old))
        self.assertIn("Would remove product-new/old.png", out.getvalue())
