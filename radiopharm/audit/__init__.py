"""Append-only audit trail.

    from radiopharm.audit.api import log, log_event

    log("CREATE", obj=order, actor=request.user)
    log_event("LOGIN", actor=user)
"""
