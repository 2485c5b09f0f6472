from stockflow.core.errors import NotFound


def scope_to_owner(stmt, model, identity):
    """Restrict a select to the caller's records unless the caller is admin."""
    if identity.is_static_admin:
        return stmt
    return stmt.where(model.user_id == identity.user_id)


def get_owned(db, model, record_id, identity, not_found_message):
    record = db.get(model, record_id)
    if record is None:
        raise NotFound(not_found_message)
    if not identity.is_static_admin and record.user_id != identity.user_id:
        raise NotFound(not_found_message)
    return record


def owner_for_write(identity, record=None):
    """Owner id for records created or compared in the caller's scope."""
    if record is not None:
        return record.user_id
    return identity.user_id
