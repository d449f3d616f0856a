"""
Auth cookies: the only channel tokens travel in.

Both cookies are HttpOnly. Production sets Secure and SameSite=None so the
SPA on another origin can send them; development uses SameSite=Lax over http.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CookieSettings:
    access_name: str = "accessToken"
    refresh_name: str = "refreshToken"
    secure: bool = False
    samesite: str = "Lax"
    path: str = "/"

    @classmethod
    def from_config(cls, config) -> "CookieSettings":
        production = bool(config.get("IS_PRODUCTION"))
        return cls(
            access_name=config.get("ACCESS_COOKIE", "accessToken"),
            refresh_name=config.get("REFRESH_COOKIE", "refreshToken"),
            secure=production,
            samesite="None" if production else "Lax",
        )


def set_auth_cookies(response, issued, settings: CookieSettings) -> None:
    """Set access and refresh cookies; max_age mirrors each token's TTL."""
    response.set_cookie(
        settings.access_name,
        issued.access_token,
        max_age=issued.access_max_age,
        httponly=True,
        secure=settings.secure,
        samesite=settings.samesite,
        path=settings.path,
    )
    response.set_cookie(
        settings.refresh_name,
        issued.refresh_token,
        max_age=issued.refresh_max_age,
        httponly=True,
        secure=settings.secure,
        samesite=settings.samesite,
        path=settings.path,
    )


def clear_auth_cookies(response, settings: CookieSettings) -> None:
    for name in (settings.access_name, settings.refresh_name):
        response.delete_cookie(
            name,
            path=settings.path,
            httponly=True,
            secure=settings.secure,
            samesite=settings.samesite,
        )
