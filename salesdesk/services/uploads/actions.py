ACTION_SUBMIT = "submit"
ACTION_UPLOAD = "upload"
ACTION_REMOVE = "remove"
ACTION_CANCEL = "cancel"


def apply_upload_action(request, pending, files_field="documents"):
    """Apply the pending-list part of a form POST and return the action.

    ``remove_handle`` drops one staged file, ``action=cancel`` tears the whole
    list down, and files posted with ``upload`` or ``submit`` are staged.
    """
    handle_id = request.POST.get("remove_handle")
    if handle_id:
        pending.remove(handle_id)
        return ACTION_REMOVE

    action = request.POST.get("action") or ACTION_SUBMIT
    if action == ACTION_CANCEL:
        pending.teardown()
        return ACTION_CANCEL

    new_files = request.FILES.getlist(files_field)
    if new_files:
        pending.add(new_files)
    return ACTION_UPLOAD if action == ACTION_UPLOAD else ACTION_SUBMIT
