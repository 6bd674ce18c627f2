import json

import pytest

from singlepage import ConfigurationError, build_template, main, naming

from .conftest import CERTIFICATE


@pytest.fixture
def write_config(tmp_path):
    def write(document):
        path = tmp_path / "constructs.json"
        path.write_text(json.dumps(document))
        return str(path)

    return write


def test_prints_minified_template(write_config, capsys):
    config = write_config(
        {
            "service": "app",
            "constructs": {
                "landing": {
                    "type": "single-page-app",
                    "path": ".",
                    "domain": "www.example.com",
                    "certificate": CERTIFICATE,
                }
            },
        }
    )

    assert main([config]) == 0

    out = capsys.readouterr().out
    assert "\n" not in out.strip()
    template = json.loads(out)
    assert naming.logical_id("landing", "Bucket") in template["Resources"]
    request = template["Resources"][naming.logical_id("landing", "RequestFunction")]
    assert request["Properties"]["Name"] == "app-dev-us-east-1-landing-request"


def test_options_override_the_naming_context(write_config, capsys):
    config = write_config({"service": "app", "constructs": {"landing": {"path": "."}}})

    assert main([config, "--service", "web", "--stage", "prod", "--no-minify"]) == 0

    template = json.loads(capsys.readouterr().out)
    request = template["Resources"][naming.logical_id("landing", "RequestFunction")]
    assert request["Properties"]["Name"] == "web-prod-us-east-1-landing-request"


def test_compiles_every_construct(write_config, capsys):
    config = write_config(
        {"constructs": {"landing": {"path": "."}, "docs": {"path": "docs"}}}
    )

    assert main([config]) == 0

    resources = json.loads(capsys.readouterr().out)["Resources"]
    assert naming.logical_id("landing", "Bucket") in resources
    assert naming.logical_id("docs", "Bucket") in resources


def test_configuration_errors_exit_with_failure(write_config, capsys):
    config = write_config({"constructs": {"landing": {"path": ".", "domain": "example.com"}}})

    assert main([config]) == 1

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "landing" in captured.err
    assert "certificate" in captured.err


def test_missing_constructs(write_config, capsys):
    assert main([write_config({"service": "app"})]) == 1
    assert "constructs" in capsys.readouterr().err


def test_configuration_errors_keep_their_field(context):
    with pytest.raises(ConfigurationError) as excinfo:
        build_template(
            {"constructs": {"landing": {"path": ".", "domain": "example.com"}}}, context
        )
    assert excinfo.value.field == "constructs.landing.certificate"
    assert str(excinfo.value).startswith(
        "Invalid configuration in 'constructs.landing.certificate'"
    )
