"""
Token authentication for the REST API.

DRF's default token class already uses the ``Token`` keyword; the
subclass gives the settings module a stable import path.  JWTs from
``rest_framework_simplejwt`` are accepted alongside it.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    keyword = 'Token'
