"""
Source code of the CloudFront Functions attached to the default cache behavior.

Both functions are fixed templates. Only the primary domain (for the redirect)
and the set of security headers vary between constructs.
"""
import json
from typing import Dict, Optional, Tuple

RUNTIME = "cloudfront-js-1.0"

FALLBACK_URI = "/index.html"

# requests for anything else are client-side routes and get the app shell
STATIC_ASSET_EXTENSIONS = (
    "css",
    "gif",
    "ico",
    "jpg",
    "jpeg",
    "js",
    "png",
    "txt",
    "svg",
    "woff",
    "woff2",
    "ttf",
    "map",
    "json",
    "webp",
    "xml",
    "pdf",
    "webmanifest",
    "avif",
    "wasm",
)

# no dot at all, or a final extension that is not a static asset
REDIRECT_PATTERN = (
    r"^[^.]+$|\.(?!(" + "|".join(STATIC_ASSET_EXTENSIONS) + r")$)([^.]+$)"
)

SECURITY_HEADERS = {
    "x-frame-options": {"value": "SAMEORIGIN"},
    "x-content-type-options": {"value": "nosniff"},
    "x-xss-protection": {"value": "1; mode=block"},
    "strict-transport-security": {"value": "max-age=63072000"},
}

REQUEST_FUNCTION_TEMPLATE = """var REDIRECT_REGEX = /{pattern}/;

function handler(event) {
    var uri = event.request.uri;
    var request = event.request;
    var isUriToRedirect = REDIRECT_REGEX.test(uri);

    if (isUriToRedirect) {
        request.uri = {fallback};
    }
{redirect}
    return event.request;
}"""

MAIN_DOMAIN_REDIRECT_TEMPLATE = """    if (request.headers["host"].value !== {domain}) {
        return {
            statusCode: 301,
            statusDescription: "Moved Permanently",
            headers: {
                location: {
                    value: {location} + request.uri
                }
            }
        };
    }
"""

RESPONSE_FUNCTION_TEMPLATE = """function handler(event) {
    var response = event.response;
    response.headers = Object.assign({}, {headers}, response.headers);
    return response;
}"""


def js_string(value: str) -> str:
    return json.dumps(value)


def main_domain_redirect_code(primary_domain: str) -> str:
    return MAIN_DOMAIN_REDIRECT_TEMPLATE.replace(
        "{domain}", js_string(primary_domain)
    ).replace("{location}", js_string(f"https://{primary_domain}"))


def request_function_code(
    redirect_to_main_domain: bool = False, primary_domain: Optional[str] = None
) -> str:
    if redirect_to_main_domain and not primary_domain:
        raise ValueError("Redirecting to the main domain requires a primary domain")
    redirect = main_domain_redirect_code(primary_domain) if redirect_to_main_domain else ""
    return (
        REQUEST_FUNCTION_TEMPLATE.replace("{pattern}", REDIRECT_PATTERN)
        .replace("{fallback}", js_string(FALLBACK_URI))
        .replace("{redirect}", redirect)
    )


def security_headers(allow_iframe: bool = False) -> Dict[str, Dict[str, str]]:
    return {
        name: value
        for name, value in SECURITY_HEADERS.items()
        if not (allow_iframe and name == "x-frame-options")
    }


def response_function_code(allow_iframe: bool = False) -> str:
    # headers already set by the origin take precedence
    return RESPONSE_FUNCTION_TEMPLATE.replace(
        "{headers}", json.dumps(security_headers(allow_iframe), indent=4)
    )


def synthesize(
    redirect_to_main_domain: bool,
    primary_domain: Optional[str],
    allow_iframe: bool = False,
) -> Tuple[str, str]:
    return (
        request_function_code(redirect_to_main_domain, primary_domain),
        response_function_code(allow_iframe),
    )
