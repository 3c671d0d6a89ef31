"""Токены сессии.

После подтверждения личности (вход через Google) приложение выдаёт
собственный токен сессии — подписанную строку с ID аккаунта.
Подпись и срок жизни проверяет itsdangerous, хранить сессии на
сервере не нужно.
"""

import secrets

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from bongo.config.models import AuthSettings
from bongo.core.exceptions import IdentityVerificationError
from bongo.utils.logging import get_logger

logger = get_logger(__name__)

# Соль отделяет токены сессии от других подписанных данных с тем же секретом
SESSION_SALT = "bongo-session"

SECONDS_PER_DAY = 24 * 60 * 60


class SessionTokens:
    """Выдача и проверка токенов сессии.

    Пример использования:
        tokens = SessionTokens(secret="...", ttl_days=7)
        token = tokens.issue(account_id=1)
        account_id = tokens.verify(token)
    """

    def __init__(self, secret: str, ttl_days: int = 7) -> None:
        """Инициализировать сервис токенов.

        Args:
            secret: Секрет для подписи.
            ttl_days: Срок жизни токена в днях.
        """
        self._serializer = URLSafeTimedSerializer(secret, salt=SESSION_SALT)
        self._max_age = ttl_days * SECONDS_PER_DAY

    def issue(self, account_id: int) -> str:
        """Выдать токен сессии для аккаунта."""
        return self._serializer.dumps({"aid": account_id})

    def verify(self, token: str) -> int:
        """Проверить токен и вернуть ID аккаунта.

        Raises:
            IdentityVerificationError: Токен подделан, повреждён или истёк.
        """
        try:
            payload = self._serializer.loads(token, max_age=self._max_age)
        except SignatureExpired as e:
            raise IdentityVerificationError("Session expired") from e
        except BadSignature as e:
            raise IdentityVerificationError("Invalid session token") from e

        account_id = payload.get("aid") if isinstance(payload, dict) else None
        if not isinstance(account_id, int):
            raise IdentityVerificationError("Invalid session token")
        return account_id


def create_session_tokens(auth: AuthSettings | None = None) -> SessionTokens:
    """Создать сервис токенов сессии.

    Если AUTH__SESSION_SECRET не задан, секрет генерируется при старте:
    после перезапуска все сессии станут невалидными.

    Args:
        auth: Настройки сессий (по умолчанию из окружения).

    Returns:
        Настроенный SessionTokens.
    """
    if auth is None:
        from bongo.config.settings import settings

        auth = settings.auth

    if auth.session_secret is not None:
        secret = auth.session_secret.get_secret_value()
    else:
        logger.warning(
            "AUTH__SESSION_SECRET не задан: сгенерирован временный секрет, "
            "сессии не переживут перезапуск"
        )
        secret = secrets.token_urlsafe(32)

    return SessionTokens(secret, ttl_days=auth.session_ttl_days)
