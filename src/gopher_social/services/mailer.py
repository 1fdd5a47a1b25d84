"""Transactional mail through the SendGrid v3 REST API.

Templates ship inside the package under ``templates/``. Each file holds a
``## subject`` and a ``## body`` section rendered with :class:`string.Template`;
substituted values are HTML-escaped.
"""

from __future__ import annotations

import asyncio
import html
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from importlib import resources
from string import Template
from typing import Any

import httpx

from gopher_social.core.settings import settings

logger = logging.getLogger(__name__)

SENDGRID_BASE_URL = "https://api.sendgrid.com"
SEND_PATH = "/v3/mail/send"
FROM_NAME = "GopherSocial"
MAX_RETRIES = 3
USER_WELCOME_TEMPLATE = "user_invitation"

_SECTION_PREFIX = "## "


class MailerError(RuntimeError):
    """Raised when a message could not be rendered or delivered."""


@dataclass(frozen=True)
class RenderedMail:
    subject: str
    body: str


def _split_sections(source: str) -> dict[str, str]:
    sections: dict[str, list[str]] = {}
    current: list[str] | None = None
    for line in source.splitlines():
        if line.startswith(_SECTION_PREFIX):
            current = sections.setdefault(line[len(_SECTION_PREFIX):].strip(), [])
            continue
        if current is not None:
            current.append(line)
    return {name: "\n".join(lines).strip() for name, lines in sections.items()}


def render_template(name: str, data: Mapping[str, Any]) -> RenderedMail:
    """Render the ``subject`` and ``body`` sections of template ``name``.

    Raises:
        MailerError: The template is missing, lacks a section or references
            a key absent from ``data``.
    """
    try:
        source = (
            resources.files("gopher_social.templates")
            .joinpath(f"{name}.tmpl")
            .read_text(encoding="utf-8")
        )
    except FileNotFoundError as err:
        raise MailerError(f"unknown mail template {name!r}") from err

    sections = _split_sections(source)
    escaped = {key: html.escape(str(value)) for key, value in data.items()}
    try:
        return RenderedMail(
            subject=Template(sections["subject"]).substitute(data),
            body=Template(sections["body"]).substitute(escaped),
        )
    except KeyError as err:
        raise MailerError(f"template {name!r} is missing {err}") from err


class SendGridMailer:
    """Deliver templated mail, retrying failed attempts with linear backoff."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self._client = client or httpx.AsyncClient(
            base_url=SENDGRID_BASE_URL,
            timeout=httpx.Timeout(10.0),
        )
        self._sleep = sleep

    def _payload(
        self,
        mail: RenderedMail,
        username: str,
        email: str,
        is_sandbox: bool,
    ) -> dict[str, Any]:
        return {
            "personalizations": [{"to": [{"email": email, "name": username}]}],
            "from": {"email": self.from_email, "name": FROM_NAME},
            "subject": mail.subject,
            "content": [{"type": "text/html", "value": mail.body}],
            "mail_settings": {"sandbox_mode": {"enable": is_sandbox}},
        }

    async def send(
        self,
        template_name: str,
        username: str,
        email: str,
        data: Mapping[str, Any],
        *,
        is_sandbox: bool,
    ) -> int:
        """Send one message and return the provider's status code.

        Raises:
            MailerError: After ``MAX_RETRIES`` failed attempts.
        """
        payload = self._payload(render_template(template_name, data), username, email, is_sandbox)
        headers = {"Authorization": f"Bearer {self.api_key}"}

        for attempt in range(MAX_RETRIES):
            try:
                response = await self._client.post(SEND_PATH, json=payload, headers=headers)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                logger.warning(
                    "mail attempt failed attempt=%s/%s email=%s error=%s",
                    attempt + 1,
                    MAX_RETRIES,
                    email,
                    exc,
                )
                await self._sleep(attempt + 1)
                continue

            logger.info("email sent email=%s status=%s", email, response.status_code)
            return response.status_code

        raise MailerError(f"failed to send email after {MAX_RETRIES} attempts")

    async def aclose(self) -> None:
        await self._client.aclose()


_mailer: SendGridMailer | None = None


def get_mailer() -> SendGridMailer:
    """Return the process-wide mailer, creating it on first use."""
    global _mailer
    if _mailer is None:
        _mailer = SendGridMailer(settings.sendgrid_api_key, settings.from_email)
    return _mailer


async def close_mailer() -> None:
    global _mailer
    if _mailer is not None:
        await _mailer.aclose()
        _mailer = None
