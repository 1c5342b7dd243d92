import logging
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from .lifecycle import STATUS_RESOLVED

logger = logging.getLogger(__name__)


def notify_reporter(issue):
    """Email the reporter about the issue's new status.

    Returns True when a mail was sent. Mail problems are logged, never raised:
    the status change is already saved by the time this runs.
    """
    if not getattr(settings, 'ISSUE_STATUS_EMAILS', True):
        return False

    User = get_user_model()
    try:
        reporter = User.objects.filter(pk=issue.reported_by).first()
    except (TypeError, ValueError):
        logger.warning('Issue %s has a reporter id the user table cannot hold: %r', issue.id, issue.reported_by)
        return False
    if not reporter or not reporter.email:
        return False

    status_label = issue.status.replace('-', ' ')
    message = f"Your report '{issue.title}' status is now {status_label}."
    if issue.status == STATUS_RESOLVED:
        message += f"\n\nResolution notes: {issue.resolution_notes}"

    try:
        send_mail(
            subject="Report status updated",
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[reporter.email],
        )
    except Exception:
        logger.exception('Failed to email reporter %s about issue %s', reporter.pk, issue.id)
        return False
    logger.info('Notified reporter %s about issue %s (%s)', reporter.pk, issue.id, issue.status)
    return True
