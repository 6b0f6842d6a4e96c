"""Outbound email for equipment-request decisions.

Sending happens after the request's status change is committed and is
best-effort: a delivery failure is logged and reported to the caller as
``False``, never raised.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText

from flask import current_app

from cityflow.models import EquipmentRequest

logger = logging.getLogger(__name__)

MAIL_BACKENDS = ("log", "smtp")


def send_request_approval_email(equipment_request: EquipmentRequest) -> bool:
    subject = f"Equipment request approved: {equipment_request.inventory_item_name}"
    body = (
        "Your equipment request has been approved.\n\n"
        f"Item: {equipment_request.inventory_item_name}\n"
        f"Quantity: {equipment_request.quantity}\n"
        f"Dates: {_date_range(equipment_request)}\n"
    )
    return send_email(equipment_request.requestor_email, subject, body)


def send_request_denial_email(equipment_request: EquipmentRequest) -> bool:
    subject = f"Equipment request denied: {equipment_request.inventory_item_name}"
    body = (
        "Your equipment request has been denied.\n\n"
        f"Item: {equipment_request.inventory_item_name}\n"
        f"Quantity: {equipment_request.quantity}\n"
        f"Dates: {_date_range(equipment_request)}\n"
        f"Reason: {equipment_request.denial_reason or 'No reason provided'}\n"
    )
    return send_email(equipment_request.requestor_email, subject, body)


def send_email(recipient: str, subject: str, body: str) -> bool:
    backend = current_app.config.get("MAIL_BACKEND", "log")
    if backend not in MAIL_BACKENDS:
        logger.error("unknown MAIL_BACKEND %r; email to %s not sent", backend, recipient)
        return False

    if backend == "log":
        logger.info("email to %s: %s\n%s", recipient, subject, body)
        return True

    try:
        _send_smtp(recipient, subject, body)
    except (smtplib.SMTPException, OSError):
        logger.exception("failed to send email to %s", recipient)
        return False

    logger.info("sent email to %s: %s", recipient, subject)
    return True


def _send_smtp(recipient: str, subject: str, body: str) -> None:
    config = current_app.config
    message = MIMEText(body, "plain", "utf-8")
    message["From"] = config["MAIL_SENDER"]
    message["To"] = recipient
    message["Subject"] = subject

    if config.get("SMTP_USE_SSL"):
        server = smtplib.SMTP_SSL(config["SMTP_HOST"], config["SMTP_PORT"], timeout=10)
    else:
        server = smtplib.SMTP(config["SMTP_HOST"], config["SMTP_PORT"], timeout=10)
    with server:
        if not config.get("SMTP_USE_SSL"):
            server.starttls()
        if config.get("SMTP_USERNAME"):
            server.login(config["SMTP_USERNAME"], config["SMTP_PASSWORD"] or "")
        server.sendmail(config["MAIL_SENDER"], [recipient], message.as_string())


def _date_range(equipment_request: EquipmentRequest) -> str:
    start = equipment_request.start_date.strftime("%Y-%m-%d")
    end = equipment_request.end_date.strftime("%Y-%m-%d")
    return f"{start} to {end}"
