"""
Token authentication for the API.

Kept apart from the views so Django REST framework can import it from
settings during start-up without pulling in the view modules.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """``Authorization: Token <key>`` authentication."""

    keyword = 'Token'
