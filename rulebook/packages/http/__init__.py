"""HTTP reference package - request, cookie and query data from a WSGI environ."""

from .conditions import (
    ConstantCondition,
    CookieCondition,
    RequestHeaderCondition,
    RequestMethodCondition,
    RequestParamCondition,
    RequestUrlCondition,
)
from .contexts import CookieContext, ParamContext, RequestContext
from .package import CONDITION_TYPES, HttpPackage

__all__ = [
    "HttpPackage",
    "CONDITION_TYPES",
    "RequestContext",
    "CookieContext",
    "ParamContext",
    "ConstantCondition",
    "CookieCondition",
    "RequestHeaderCondition",
    "RequestMethodCondition",
    "RequestParamCondition",
    "RequestUrlCondition",
]
