# src/gopher_social/services/__init__.py
"""Services backing the HTTP layer: tokens, caching, rate limiting and mail."""

from .authenticator import JWTAuthenticator, TokenError
from .mailer import MailerError, SendGridMailer
from .rate_limiter import FixedWindowLimiter
from .user_cache import UserCache, load_user

__all__ = [
    "JWTAuthenticator",
    "TokenError",
    "MailerError",
    "SendGridMailer",
    "FixedWindowLimiter",
    "UserCache",
    "load_user",
]
