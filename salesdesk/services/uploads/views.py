from django.http import FileResponse, Http404

from portal.access_control import login_required_portal

from .staging import PendingUploads


@login_required_portal
def preview(request, form_key, handle_id):
    pending = PendingUploads(request.session, form_key)
    handle = pending.get(handle_id)
    if handle is None or not pending.storage.exists(handle.storage_name):
        raise Http404("Upload not found")
    return FileResponse(
        pending.storage.open(handle.storage_name, "rb"),
        content_type=handle.content_type,
        filename=handle.name,
    )
