from __future__ import annotations

from typing import Any, Dict

import click
from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from licitacoes.errors import AuthExpiredError


_TOKEN_SALT = "licitacoes-access-token"
_PUBLIC_PATHS = {"/health"}


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_TOKEN_SALT)


def issue_access_token(subject: str, **claims: Any) -> str:
    """Signed, timestamped access token. Meant for development and tests."""
    return _serializer().dumps({"sub": subject, **claims})


def verify_access_token(token: str, max_age: int | None = None) -> Dict[str, Any]:
    ttl = int(max_age if max_age is not None else current_app.config.get("ACCESS_TOKEN_TTL_SECONDS", 900))
    try:
        claims = _serializer().loads(token, max_age=ttl)
    except SignatureExpired as exc:
        raise AuthExpiredError(details="token expirado") from exc
    except BadSignature as exc:
        raise AuthExpiredError(code="token_invalid", message_key="token_invalid") from exc
    if not isinstance(claims, dict) or not claims.get("sub"):
        raise AuthExpiredError(code="token_invalid", message_key="token_invalid")
    return claims


def _bearer_token() -> str | None:
    header = (request.headers.get("Authorization") or "").strip()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def register_auth(app) -> None:
    @app.before_request
    def _require_access_token():
        if not app.config.get("AUTH_ENABLED", True):
            return None
        if app.config.get("TESTING"):
            return None

        path = request.path or "/"
        if path in _PUBLIC_PATHS or not path.startswith("/api/"):
            return None

        token = _bearer_token()
        if not token:
            raise AuthExpiredError(code="auth_required", message_key="auth_required")
        claims = verify_access_token(token)
        g.current_user_id = claims["sub"]
        return None

    @app.cli.command("issue-token")
    @click.argument("subject")
    def issue_token_command(subject: str) -> None:
        """Emite um token de acesso para desenvolvimento."""
        click.echo(issue_access_token(subject))
