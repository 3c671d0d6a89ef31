"""Подтверждение личности через Google Sign-In.

Клиент получает ID-токен Google (поле credential) и передаёт его нам.
Подпись токена проверяет сам Google через эндпоинт tokeninfo, мы
сверяем только получателя (aud) с нашим Client ID.

Документация: https://developers.google.com/identity/gsi/web/guides/verify-google-id-token
"""

from dataclasses import dataclass
from typing import Protocol

import httpx

from bongo.core.exceptions import IdentityVerificationError
from bongo.utils.logging import get_logger

logger = get_logger(__name__)

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"

# Допустимые издатели ID-токена
GOOGLE_ISSUERS = frozenset({"accounts.google.com", "https://accounts.google.com"})


@dataclass(frozen=True)
class VerifiedIdentity:
    """Подтверждённая личность пользователя.

    Attributes:
        subject: Постоянный ID пользователя у Google ("sub").
        email: Email (если есть).
        name: Полное имя.
        given_name: Имя.
        family_name: Фамилия.
        picture: URL аватара.
    """

    subject: str
    email: str | None = None
    name: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    picture: str | None = None


class IdentityVerifier(Protocol):
    """Внешний сервис подтверждения личности."""

    async def verify(self, credential: str) -> VerifiedIdentity:
        """Проверить credential и вернуть личность."""
        ...

    async def close(self) -> None:
        """Освободить ресурсы."""
        ...


class GoogleIdentityVerifier:
    """Проверка Google ID-токена через tokeninfo.

    Пример использования:
        verifier = GoogleIdentityVerifier(client_id="...apps.googleusercontent.com")
        identity = await verifier.verify(credential)
    """

    def __init__(
        self,
        client_id: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def verify(self, credential: str) -> VerifiedIdentity:
        """Проверить Google ID-токен.

        Args:
            credential: ID-токен из Google Sign-In.

        Returns:
            VerifiedIdentity.

        Raises:
            IdentityVerificationError: Токен невалиден, выдан другому
                приложению или Google недоступен.
        """
        if not credential:
            raise IdentityVerificationError("Credential is required")

        try:
            response = await self._client.get(
                TOKENINFO_URL, params={"id_token": credential}
            )
        except httpx.HTTPError as e:
            logger.warning("Google tokeninfo недоступен: %s", e)
            raise IdentityVerificationError("Identity provider unavailable") from e

        if response.status_code != 200:
            logger.info("Google отклонил ID-токен: HTTP %d", response.status_code)
            raise IdentityVerificationError("Invalid Google credential")

        try:
            claims = response.json()
        except ValueError as e:
            raise IdentityVerificationError("Invalid Google credential") from e

        if claims.get("aud") != self._client_id:
            logger.warning("ID-токен выдан другому приложению: aud=%s", claims.get("aud"))
            raise IdentityVerificationError("Credential was issued for another client")
        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise IdentityVerificationError("Invalid Google credential")

        subject = claims.get("sub")
        if not subject:
            raise IdentityVerificationError("Invalid Google credential")

        return VerifiedIdentity(
            subject=str(subject),
            email=claims.get("email"),
            name=claims.get("name"),
            given_name=claims.get("given_name"),
            family_name=claims.get("family_name"),
            picture=claims.get("picture"),
        )

    async def close(self) -> None:
        """Закрыть HTTP-клиент."""
        await self._client.aclose()
