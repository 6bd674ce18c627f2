from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .exceptions import ConfigurationError

CONSTRUCT_TYPE = "single-page-app"

ALLOWED_METHODS_ALL = "all"
ALLOWED_METHODS_READ_ONLY = "readOnly"
ALLOWED_METHODS_CHOICES = {
    choice.lower(): choice for choice in (ALLOWED_METHODS_ALL, ALLOWED_METHODS_READ_ONLY)
}

ALL_HEADERS = "*"

EXTENSION_ROLES = (
    "bucket",
    "bucketPolicy",
    "originAccessIdentity",
    "distribution",
    "requestFunction",
    "responseFunction",
)

CONFIGURATION_KEYS = {
    "type",
    "path",
    "domain",
    "certificate",
    "security",
    "redirectToMainDomain",
    "origins",
    "extensions",
}
ORIGIN_KEYS = {"domain", "path", "pathPattern", "cacheBehavior"}
CACHE_BEHAVIOR_KEYS = {"allowedMethods", "cacheOptionsMethod", "headers"}
SECURITY_KEYS = {"allowIframe"}


def _check_keys(raw: Any, allowed: set, field_name: str) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise ConfigurationError("must be a mapping", field_name or None)
    unknown = sorted(set(raw) - allowed)
    if unknown:
        prefix = f"{field_name}." if field_name else ""
        raise ConfigurationError(
            f"unknown key, expected one of {', '.join(sorted(allowed))}",
            prefix + str(unknown[0]),
        )
    return raw


def _optional_str(raw: Mapping[str, Any], key: str, field_name: str) -> Optional[str]:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigurationError("must be a string", field_name)
    return value


def _bool(raw: Mapping[str, Any], key: str, field_name: str) -> bool:
    value = raw.get(key, False)
    if not isinstance(value, bool):
        raise ConfigurationError("must be a boolean", field_name)
    return value


@dataclass(frozen=True)
class NamingContext:
    service: str
    stage: str = "dev"
    region: str = "us-east-1"

    @property
    def stage_prefix(self) -> str:
        return f"{self.service}-{self.stage}"

    @property
    def stack_name(self) -> str:
        return self.stage_prefix


@dataclass(frozen=True)
class CacheBehaviorSpec:
    allowed_methods: str = ALLOWED_METHODS_READ_ONLY
    cache_options_method: bool = False
    headers: Tuple[str, ...] = ()

    def __post_init__(self):
        allowed_methods = self.allowed_methods
        if not isinstance(allowed_methods, str) or (
            allowed_methods.lower() not in ALLOWED_METHODS_CHOICES
        ):
            raise ConfigurationError(
                f"expected '{ALLOWED_METHODS_ALL}' or '{ALLOWED_METHODS_READ_ONLY}', "
                f"got {allowed_methods!r}",
                "allowedMethods",
            )
        if not isinstance(self.cache_options_method, bool):
            raise ConfigurationError("must be a boolean", "cacheOptionsMethod")

        headers = self.headers
        if isinstance(headers, str):
            headers = [headers]
        if not isinstance(headers, (list, tuple)) or not all(
            isinstance(header, str) and header for header in headers
        ):
            raise ConfigurationError("must be a list of header names or '*'", "headers")
        if ALL_HEADERS in headers:
            headers = [ALL_HEADERS]

        # frozen, so normalized values go through object.__setattr__
        object.__setattr__(
            self, "allowed_methods", ALLOWED_METHODS_CHOICES[allowed_methods.lower()]
        )
        object.__setattr__(self, "headers", tuple(dict.fromkeys(headers)))

    @property
    def forwards_all_headers(self) -> bool:
        return ALL_HEADERS in self.headers

    @property
    def uses_default_policy(self) -> bool:
        return not self.headers and not self.cache_options_method

    @classmethod
    def from_dict(cls, raw: Any, field_name: str) -> "CacheBehaviorSpec":
        raw = _check_keys(raw, CACHE_BEHAVIOR_KEYS, field_name)
        try:
            return cls(
                allowed_methods=raw.get("allowedMethods", ALLOWED_METHODS_READ_ONLY),
                cache_options_method=raw.get("cacheOptionsMethod", False),
                headers=raw.get("headers", ()),
            )
        except ConfigurationError as exc:
            raise exc.within(field_name) from exc


@dataclass(frozen=True)
class OriginSpec:
    domain: Optional[str] = None
    path: Optional[str] = None
    path_pattern: Optional[str] = None
    cache_behavior: Optional[CacheBehaviorSpec] = None

    def __post_init__(self):
        for key, value in (
            ("domain", self.domain),
            ("path", self.path),
            ("pathPattern", self.path_pattern),
        ):
            if value is not None and not isinstance(value, str):
                raise ConfigurationError("must be a string", key)
        if self.cache_behavior is not None and not isinstance(
            self.cache_behavior, CacheBehaviorSpec
        ):
            raise ConfigurationError("must be a cache behavior", "cacheBehavior")
        if self.is_routed and not self.domain:
            raise ConfigurationError(
                "an origin with a pathPattern must declare a domain", "domain"
            )

    @property
    def is_routed(self) -> bool:
        return self.path_pattern is not None

    @classmethod
    def from_dict(cls, raw: Any, field_name: str) -> "OriginSpec":
        raw = _check_keys(raw, ORIGIN_KEYS, field_name)
        cache_behavior = raw.get("cacheBehavior")
        if cache_behavior is not None:
            cache_behavior = CacheBehaviorSpec.from_dict(
                cache_behavior, f"{field_name}.cacheBehavior"
            )
        try:
            return cls(
                domain=raw.get("domain"),
                path=raw.get("path"),
                path_pattern=raw.get("pathPattern"),
                cache_behavior=cache_behavior,
            )
        except ConfigurationError as exc:
            raise exc.within(field_name) from exc


@dataclass(frozen=True)
class Configuration:
    path: str
    domains: Tuple[str, ...] = ()
    certificate: Optional[str] = None
    origins: Tuple[OriginSpec, ...] = ()
    redirect_to_main_domain: bool = False
    allow_iframe: bool = False
    extensions: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        if self.domains and not self.certificate:
            raise ConfigurationError(
                "if a domain is specified, a certificate must be specified",
                "certificate",
            )
        if self.redirect_to_main_domain and not self.domains:
            raise ConfigurationError(
                "redirecting to the main domain requires at least one domain",
                "redirectToMainDomain",
            )
        default_origins = [
            index for index, origin in enumerate(self.origins) if not origin.is_routed
        ]
        if len(default_origins) > 1:
            raise ConfigurationError(
                "only one origin without a pathPattern can customize the default origin",
                f"origins[{default_origins[1]}].pathPattern",
            )
        for index in default_origins:
            if self.origins[index].domain:
                raise ConfigurationError(
                    "the default origin is the website bucket, an origin without "
                    "a pathPattern cannot declare a domain",
                    f"origins[{index}].domain",
                )
        for role, tree in self.extensions.items():
            if role not in EXTENSION_ROLES:
                raise ConfigurationError(
                    f"there is no extension '{role}' available, "
                    f"available extensions are: {', '.join(EXTENSION_ROLES)}",
                    f"extensions.{role}",
                )
            if not isinstance(tree, Mapping):
                raise ConfigurationError("must be a mapping", f"extensions.{role}")

    @property
    def primary_domain(self) -> Optional[str]:
        return self.domains[0] if self.domains else None

    @property
    def default_origin(self) -> Optional[OriginSpec]:
        return next((origin for origin in self.origins if not origin.is_routed), None)

    @property
    def routed_origins(self) -> Tuple[OriginSpec, ...]:
        return tuple(origin for origin in self.origins if origin.is_routed)

    @classmethod
    def from_dict(cls, raw: Any) -> "Configuration":
        raw = _check_keys(raw, CONFIGURATION_KEYS, "")

        construct_type = raw.get("type", CONSTRUCT_TYPE)
        if construct_type != CONSTRUCT_TYPE:
            raise ConfigurationError(
                f"expected '{CONSTRUCT_TYPE}', got {construct_type!r}", "type"
            )

        path = raw.get("path")
        if not isinstance(path, str) or not path:
            raise ConfigurationError("a path to the website assets is required", "path")

        domains = raw.get("domain", ())
        if isinstance(domains, str):
            domains = [domains]
        if not isinstance(domains, (list, tuple)) or not all(
            isinstance(domain, str) and domain for domain in domains
        ):
            raise ConfigurationError("must be a domain or a list of domains", "domain")

        origins = raw.get("origins") or []
        if not isinstance(origins, (list, tuple)):
            raise ConfigurationError("must be a list", "origins")

        security = _check_keys(raw.get("security") or {}, SECURITY_KEYS, "security")

        extensions = raw.get("extensions") or {}
        if not isinstance(extensions, Mapping):
            raise ConfigurationError("must be a mapping", "extensions")

        return cls(
            path=path,
            domains=tuple(domains),
            certificate=_optional_str(raw, "certificate", "certificate"),
            origins=tuple(
                OriginSpec.from_dict(origin, f"origins[{index}]")
                for index, origin in enumerate(origins)
            ),
            redirect_to_main_domain=_bool(
                raw, "redirectToMainDomain", "redirectToMainDomain"
            ),
            allow_iframe=_bool(security, "allowIframe", "security.allowIframe"),
            extensions=dict(extensions),
        )
