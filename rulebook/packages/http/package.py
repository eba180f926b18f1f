"""HTTP request package."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rulebook.context import ContextProvider
from rulebook.placeholders import PlaceholderFn
from rulebook.rules.registry import ActionRegistry, ConditionRegistry

from ..base import BasePackage
from .conditions import (
    ConstantCondition,
    CookieCondition,
    RequestHeaderCondition,
    RequestMethodCondition,
    RequestParamCondition,
    RequestUrlCondition,
)
from .contexts import CookieContext, ParamContext, RequestContext
from .placeholders import RESOLVERS

CONDITION_TYPES = {
    "request_url": RequestUrlCondition,
    "request_method": RequestMethodCondition,
    "request_header": RequestHeaderCondition,
    "request_param": RequestParamCondition,
    "cookie": CookieCondition,
    "constant": ConstantCondition,
}


class HttpPackage(BasePackage):
    """Request data and request conditions for rules evaluated per HTTP request.

    Args:
        environ: WSGI environ of the current request
        cookies: Parsed cookies; parsed from HTTP_COOKIE when omitted
        params: Query parameters; parsed from QUERY_STRING when omitted
        constants: Named values exposed to the constant condition
    """

    name = "http"
    namespaces = ("rulebook.packages.http.",)

    def __init__(
        self,
        environ: Mapping[str, Any] | None = None,
        cookies: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        constants: Mapping[str, Any] | None = None,
    ):
        super().__init__()
        self.constants = dict(constants or {})
        self.bind(environ or {}, cookies, params)

    def bind(
        self,
        environ: Mapping[str, Any],
        cookies: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> HttpPackage:
        """Point the package at a new request. Affects contexts created afterwards."""
        self.environ = environ
        self.cookies = cookies
        self.params = params
        return self

    def build_context(self) -> dict[str, Any]:
        return {"constant": dict(self.constants)}

    def context_providers(self) -> list[ContextProvider]:
        return [
            RequestContext(self.environ),
            CookieContext(self.environ, self.cookies),
            ParamContext(self.environ, self.params),
        ]

    def register_types(self, conditions: ConditionRegistry, actions: ActionRegistry) -> None:
        for type_name, cls in CONDITION_TYPES.items():
            conditions.register_class(type_name, cls)

    def placeholder_resolvers(self) -> dict[str, PlaceholderFn]:
        return dict(RESOLVERS)
