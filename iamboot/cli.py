"""iamboot CLI: print IAM bootstrap templates, configuration and policies.

Usage examples::

    iamboot print-cloudformation-template --config bootstrap-config.yaml
    iamboot print-config
    iamboot print-policy --document AWSIAMManagedPolicyControllers
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

import yaml

from iamboot.aws import (
    POLICY_DOCUMENTS,
    Template,
    policy_document,
    to_cloudformation,
    to_json,
    to_yaml,
)
from iamboot.base.config import AWSIAMConfiguration, load_config, new_configuration
from iamboot.base.exceptions import IAMBootError
from iamboot.base.logger import set_level


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ``iamboot`` CLI.

    Options shared by every sub-command are declared on a parent parser,
    so they are accepted after the sub-command name.

    Returns:
        Configured :class:`~argparse.ArgumentParser`.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to an AWSIAMConfiguration YAML file (defaults are used if omitted)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Log progress to stderr (-v for info, -vv for debug)",
    )

    parser = argparse.ArgumentParser(
        prog="iamboot",
        description="Bootstrap IAM resources for Cluster API Provider AWS",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    template = commands.add_parser(
        "print-cloudformation-template",
        parents=[common],
        help="Print the CloudFormation template for the configuration",
    )
    template.add_argument(
        "--format", "-f",
        choices=["yaml", "json"],
        default="yaml",
        help="Output format",
    )

    commands.add_parser(
        "print-config",
        parents=[common],
        help="Print the configuration, with defaults applied, as YAML",
    )

    policy = commands.add_parser(
        "print-policy",
        parents=[common],
        help="Print a single managed policy document as JSON",
    )
    policy.add_argument(
        "--document", "-d",
        required=True,
        choices=list(POLICY_DOCUMENTS),
        help="Logical name of the policy document",
    )
    return parser


def _load(path: str | None) -> AWSIAMConfiguration:
    if path is None:
        return new_configuration()
    return load_config(path)


def _run(ns: argparse.Namespace) -> str:
    config = _load(ns.config)

    if ns.command == "print-config":
        return yaml.safe_dump(config.to_dict(), sort_keys=False)

    if ns.command == "print-policy":
        return json.dumps(policy_document(ns.document, config.spec).to_dict(), indent=2)

    resources = Template(config.spec).render()
    template = to_cloudformation(resources)
    if ns.format == "json":
        return to_json(template)
    return to_yaml(template)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses arguments, loads the configuration and prints the requested
    artefact to stdout. Errors are reported on stderr with exit code 1.

    Args:
        argv: Optional argument list (defaults to ``sys.argv``).
    """
    parser = _build_parser()
    ns = parser.parse_args(argv)

    if ns.verbose >= 2:
        set_level(logging.DEBUG)
    elif ns.verbose == 1:
        set_level(logging.INFO)

    try:
        output = _run(ns)
    except IAMBootError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(output.rstrip("\n"))


if __name__ == "__main__":
    main()
