import pytest

from singlepage import NamingContext

CERTIFICATE = (
    "arn:aws:acm:us-east-1:123456615250:certificate/0a28e63d-d3a9-4578-9f8b-14347bfe8123"
)


@pytest.fixture
def context():
    return NamingContext(service="app")


@pytest.fixture
def token_factory():
    return lambda construct_name, context: "123456789"


@pytest.fixture
def base_config():
    return {
        "type": "single-page-app",
        "path": ".",
        "domain": ["www.example.com", "example.com"],
        "certificate": CERTIFICATE,
    }
