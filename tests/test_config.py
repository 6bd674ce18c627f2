import pytest

from singlepage.config import CacheBehaviorSpec, Configuration, NamingContext, OriginSpec
from singlepage.exceptions import ConfigurationError

CERTIFICATE = (
    "arn:aws:acm:us-east-1:123456615250:certificate/0a28e63d-d3a9-4578-9f8b-14347bfe8123"
)


def test_minimal_configuration():
    config = Configuration.from_dict({"type": "single-page-app", "path": "."})
    assert config.path == "."
    assert config.domains == ()
    assert config.certificate is None
    assert config.origins == ()
    assert config.redirect_to_main_domain is False
    assert config.allow_iframe is False
    assert config.extensions == {}
    assert config.primary_domain is None


def test_single_domain_is_normalized_to_a_tuple():
    config = Configuration.from_dict(
        {"path": ".", "domain": "example.com", "certificate": CERTIFICATE}
    )
    assert config.domains == ("example.com",)
    assert config.primary_domain == "example.com"


def test_domains_keep_their_order():
    config = Configuration.from_dict(
        {
            "path": ".",
            "domain": ["www.example.com", "example.com"],
            "certificate": CERTIFICATE,
        }
    )
    assert config.domains == ("www.example.com", "example.com")
    assert config.primary_domain == "www.example.com"


def test_domain_requires_certificate():
    with pytest.raises(ConfigurationError) as excinfo:
        Configuration.from_dict({"path": ".", "domain": "example.com"})
    assert excinfo.value.field == "certificate"
    assert "certificate must be specified" in str(excinfo.value)


def test_redirect_requires_a_domain():
    with pytest.raises(ConfigurationError) as excinfo:
        Configuration.from_dict({"path": ".", "redirectToMainDomain": True})
    assert excinfo.value.field == "redirectToMainDomain"


def test_path_is_required():
    with pytest.raises(ConfigurationError) as excinfo:
        Configuration.from_dict({"domain": "example.com", "certificate": CERTIFICATE})
    assert excinfo.value.field == "path"


def test_unknown_keys_are_rejected():
    with pytest.raises(ConfigurationError) as excinfo:
        Configuration.from_dict({"path": ".", "errorPage": "error.html"})
    assert excinfo.value.field == "errorPage"


def test_other_construct_types_are_rejected():
    with pytest.raises(ConfigurationError) as excinfo:
        Configuration.from_dict({"type": "static-website", "path": "."})
    assert excinfo.value.field == "type"


def test_origins_are_parsed_in_order():
    config = Configuration.from_dict(
        {
            "path": ".",
            "origins": [
                {
                    "path": "/api",
                    "pathPattern": "api/",
                    "domain": "api.example.com",
                    "cacheBehavior": {
                        "allowedMethods": "ALL",
                        "cacheOptionsMethod": True,
                        "headers": ["*"],
                    },
                },
                {"pathPattern": "media/", "domain": "media.example.com"},
            ],
        }
    )
    api, media = config.origins
    assert api.path == "/api"
    assert api.path_pattern == "api/"
    assert api.cache_behavior == CacheBehaviorSpec(
        allowed_methods="all", cache_options_method=True, headers=("*",)
    )
    assert media.cache_behavior is None
    assert config.routed_origins == (api, media)
    assert config.default_origin is None


def test_origin_without_path_pattern_customizes_the_default_origin():
    config = Configuration.from_dict({"path": ".", "origins": [{"path": "/site"}]})
    assert config.routed_origins == ()
    assert config.default_origin.path == "/site"


def test_only_one_default_origin_customization():
    with pytest.raises(ConfigurationError) as excinfo:
        Configuration.from_dict(
            {"path": ".", "origins": [{"path": "/a"}, {"path": "/b"}]}
        )
    assert excinfo.value.field == "origins[1].pathPattern"


def test_path_pattern_requires_domain():
    with pytest.raises(ConfigurationError) as excinfo:
        Configuration.from_dict({"path": ".", "origins": [{"pathPattern": "api/"}]})
    assert excinfo.value.field == "origins[0].domain"


@pytest.mark.parametrize("value", ["GET", "everything", 1, None])
def test_unknown_allowed_methods(value):
    with pytest.raises(ConfigurationError) as excinfo:
        CacheBehaviorSpec.from_dict({"allowedMethods": value}, "origins[0].cacheBehavior")
    assert excinfo.value.field == "origins[0].cacheBehavior.allowedMethods"


@pytest.mark.parametrize(
    "value, expected", [("all", "all"), ("ALL", "all"), ("readonly", "readOnly")]
)
def test_allowed_methods_are_case_insensitive(value, expected):
    spec = CacheBehaviorSpec.from_dict({"allowedMethods": value}, "cacheBehavior")
    assert spec.allowed_methods == expected


def test_header_wildcard_wins():
    spec = CacheBehaviorSpec.from_dict({"headers": ["Authorization", "*"]}, "cacheBehavior")
    assert spec.headers == ("*",)
    assert spec.forwards_all_headers
    assert not spec.uses_default_policy


def test_headers_are_deduplicated():
    spec = CacheBehaviorSpec.from_dict(
        {"headers": ["Authorization", "Accept", "Authorization"]}, "cacheBehavior"
    )
    assert spec.headers == ("Authorization", "Accept")


def test_default_policy_needs_no_headers_and_no_options_caching():
    assert CacheBehaviorSpec().uses_default_policy
    assert not CacheBehaviorSpec(cache_options_method=True).uses_default_policy
    assert not CacheBehaviorSpec(headers=("Accept",)).uses_default_policy


def test_unknown_extension_role():
    with pytest.raises(ConfigurationError) as excinfo:
        Configuration.from_dict({"path": ".", "extensions": {"queue": {}}})
    assert excinfo.value.field == "extensions.queue"


def test_extension_must_be_a_mapping():
    with pytest.raises(ConfigurationError):
        Configuration.from_dict({"path": ".", "extensions": {"bucket": ["nope"]}})


def test_security_allow_iframe():
    config = Configuration.from_dict({"path": ".", "security": {"allowIframe": True}})
    assert config.allow_iframe is True


def test_non_boolean_flags_are_rejected():
    with pytest.raises(ConfigurationError) as excinfo:
        Configuration.from_dict(
            {
                "path": ".",
                "domain": "example.com",
                "certificate": CERTIFICATE,
                "redirectToMainDomain": "yes",
            }
        )
    assert excinfo.value.field == "redirectToMainDomain"


def test_naming_context_prefix():
    context = NamingContext(service="app")
    assert context.stage_prefix == "app-dev"
    assert context.region == "us-east-1"
    assert NamingContext("app", stage="prod").stack_name == "app-prod"


def test_origin_with_path_pattern_built_directly_requires_domain():
    with pytest.raises(ConfigurationError) as excinfo:
        OriginSpec(path_pattern="api/")
    assert excinfo.value.field == "domain"


def test_configuration_built_directly_is_validated():
    with pytest.raises(ConfigurationError):
        Configuration(path=".", origins=(OriginSpec(path_pattern="api/"),))


@pytest.mark.parametrize("value", ["bogus", "GET", None])
def test_cache_behavior_built_directly_rejects_unknown_methods(value):
    with pytest.raises(ConfigurationError) as excinfo:
        CacheBehaviorSpec(allowed_methods=value)
    assert excinfo.value.field == "allowedMethods"


def test_cache_behavior_built_directly_is_normalized():
    spec = CacheBehaviorSpec(allowed_methods="ALL", headers=["Accept", "*"])
    assert spec.allowed_methods == "all"
    assert spec.headers == ("*",)


def test_cache_behavior_built_directly_rejects_bad_headers():
    with pytest.raises(ConfigurationError) as excinfo:
        CacheBehaviorSpec(headers=("Accept", 3))
    assert excinfo.value.field == "headers"


def test_default_origin_cannot_declare_a_domain():
    with pytest.raises(ConfigurationError) as excinfo:
        Configuration.from_dict(
            {"path": ".", "origins": [{"domain": "other.example.com", "path": "/site"}]}
        )
    assert excinfo.value.field == "origins[0].domain"


def test_field_is_relocated_under_a_prefix():
    error = ConfigurationError("must be a string", "domain").within("origins[2]")
    assert error.field == "origins[2].domain"
    assert error.reason == "must be a string"
    assert str(error) == "Invalid configuration in 'origins[2].domain': must be a string"
