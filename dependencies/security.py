from typing import Optional, Annotated
from fastapi import Header, HTTPException
from config.settings import settings
import hmac

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]


def require_admin_token(authorization: AuthHeader = None):
    # 토큰 미설정 시(개발 환경) 검사 생략
    if not settings.ADMIN_API_TOKEN:
        return {"client": "admin"}

    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="En-tête Authorization manquant",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # "Bearer <token>" 파싱
    try:
        scheme, token = authorization.split(" ", 1)
    except ValueError:
        raise HTTPException(
            status_code=401,
            detail="Format d'en-tête Authorization invalide",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if scheme.lower() != "bearer":
        raise HTTPException(
            status_code=401,
            detail="Schéma d'authentification invalide",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 타이밍 안전 비교
    if not hmac.compare_digest(token.strip(), settings.ADMIN_API_TOKEN):
        raise HTTPException(
            status_code=401,
            detail="Jeton invalide",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {"client": "admin"}
