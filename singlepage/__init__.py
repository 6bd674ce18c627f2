import argparse
import json
import logging
import sys

from .config import Configuration, NamingContext
from .exceptions import ConfigurationError
from .template import CompiledConstruct, compile_construct

__all__ = [
    "CompiledConstruct",
    "Configuration",
    "ConfigurationError",
    "NamingContext",
    "compile_construct",
    "main",
]

logger = logging.getLogger(__name__)


def get_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Compile single page app constructs into a CloudFormation template."
    )
    parser.add_argument(
        "config",
        type=argparse.FileType("r"),
        help="""
            JSON file with a "constructs" mapping of construct names to their configuration,
            and optionally the "service" name.
        """,
    )
    parser.add_argument("--service", help="Service name, overrides the config file.")
    parser.add_argument("--stage", default="dev")
    parser.add_argument("--region", default="us-east-1")
    parser.add_argument("--no-minify", action="store_true", default=False)
    parser.add_argument("--verbose", action="store_true", default=False)
    return parser.parse_args(argv)


def build_template(document: dict, context: NamingContext) -> dict:
    template = {"Resources": {}, "Outputs": {}}
    constructs = document.get("constructs")
    if not isinstance(constructs, dict) or not constructs:
        raise ConfigurationError("at least one construct is required", "constructs")
    for name, raw in constructs.items():
        try:
            compiled = compile_construct(name, raw, context)
        except ConfigurationError as exc:
            raise exc.within(f"constructs.{name}") from exc
        logger.info(
            "Compiled %s into %d resources", name, len(compiled.resources)
        )
        template["Resources"].update(compiled.resources)
        template["Outputs"].update(compiled.outputs)
    return template


def main(argv=None):
    args = get_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    with args.config:
        document = json.load(args.config)
    if not isinstance(document, dict):
        print(f"error: {args.config.name} must contain a JSON object", file=sys.stderr)
        return 1
    context = NamingContext(
        service=args.service or document.get("service") or "app",
        stage=args.stage,
        region=args.region,
    )
    try:
        template = build_template(document, context)
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    json_kwargs = {"sort_keys": True}
    if args.no_minify:
        json_kwargs.update({"indent": 4})
    else:
        json_kwargs.update({"indent": None, "separators": (",", ":")})
    print(json.dumps(template, **json_kwargs))
    return 0
