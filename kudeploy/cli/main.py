"""kudeploy CLI - deploy kustomize overlays from the command line.

This module provides the main CLI entrypoint, with subcommands to list an
overlay's dependencies, deploy it and clean it up.
"""

import argparse
import dataclasses
import logging
import sys

from kudeploy.core.config import DeployConfig
from kudeploy.core.context import RunContext
from kudeploy.core.errors import KudeployError
from kudeploy.core.schema.artifact import Artifact
from kudeploy.core.schema.labeller import StaticLabeller
from kudeploy.k8s.deployer import KustomizeDeployer

logger = logging.getLogger(__name__)


def _add_cluster_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "overlay",
        nargs="?",
        help="Overlay directory (default: deploy.kustomize_path from config.json or .)"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config file (default: $KUDEPLOY_CONFIG or config.json)"
    )
    parser.add_argument(
        "--namespace",
        help="Namespace for kubectl (overrides config.json)"
    )
    parser.add_argument(
        "--context",
        help="kubeconfig context for kubectl (overrides config.json)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort after this many seconds"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kudeploy",
        description="kudeploy - deploy kustomize overlays with kubectl",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List files that affect an overlay
  kudeploy deps k8s/overlays/dev

  # Deploy with a freshly built image
  kudeploy deploy k8s/overlays/dev --image app=app@sha256:abcd

  # Push images to a default repository and add a label
  kudeploy deploy k8s/overlays/dev --image app=app:v2 --default-repo gcr.io/proj --label team=payments

  # Delete what was deployed
  kudeploy cleanup k8s/overlays/dev --namespace payments
"""
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    deps_parser = subparsers.add_parser(
        "deps",
        help="List the files an overlay depends on"
    )
    deps_parser.add_argument(
        "overlay",
        nargs="?",
        help="Overlay directory (default: deploy.kustomize_path from config.json or .)"
    )
    deps_parser.add_argument(
        "--config",
        default=None,
        help="Path to config file (default: $KUDEPLOY_CONFIG or config.json)"
    )
    deps_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    deploy_parser = subparsers.add_parser(
        "deploy",
        help="Build, transform and apply an overlay"
    )
    _add_cluster_options(deploy_parser)
    deploy_parser.add_argument(
        "--image",
        action="append",
        default=[],
        metavar="NAME=TAG",
        help="Built image to deploy (repeatable)"
    )
    deploy_parser.add_argument(
        "--label",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Label to add to every resource (repeatable)"
    )
    deploy_parser.add_argument(
        "--default-repo",
        help="Repository prefixed to replaced images (overrides config.json)"
    )

    cleanup_parser = subparsers.add_parser(
        "cleanup",
        help="Delete the resources an overlay produces"
    )
    _add_cluster_options(cleanup_parser)

    return parser


def load_deploy_config(args) -> DeployConfig:
    """Load DeployConfig from the config file with CLI args as overrides."""
    config = DeployConfig.from_file(args.config)

    overrides = {}
    if args.overlay:
        overrides["kustomize_path"] = args.overlay
    if getattr(args, "namespace", None):
        overrides["namespace"] = args.namespace
    if getattr(args, "context", None):
        overrides["kube_context"] = args.context
    if getattr(args, "default_repo", None):
        overrides["default_repo"] = args.default_repo

    return dataclasses.replace(config, **overrides)


def main(argv=None):
    """Main CLI entrypoint for kudeploy."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    if hasattr(args, 'verbose') and args.verbose:
        logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
    else:
        logging.basicConfig(level=logging.WARNING, format='%(levelname)s: %(message)s')

    if args.command == "deps":
        return cmd_deps(args)
    elif args.command == "deploy":
        return cmd_deploy(args)
    elif args.command == "cleanup":
        return cmd_cleanup(args)
    else:
        parser.print_help()
        return 1


def cmd_deps(args):
    """Handle deps command."""
    try:
        deployer = KustomizeDeployer(load_deploy_config(args))
        for path in deployer.dependencies():
            print(path)
        return 0
    except KudeployError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.debug("Dependency resolution failed", exc_info=True)
        return 1


def cmd_deploy(args):
    """Handle deploy command."""
    try:
        config = load_deploy_config(args)
        builds = [Artifact.parse(value) for value in args.image]
        labellers = [StaticLabeller.parse(args.label)] if args.label else []

        deployer = KustomizeDeployer(config)
        deployer.deploy(RunContext(timeout=args.timeout), builds, labellers)
        print(f"Deployed {config.kustomize_path}")
        return 0
    except KudeployError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.exception("Deploy failed")
        return 1


def cmd_cleanup(args):
    """Handle cleanup command."""
    try:
        config = load_deploy_config(args)
        deployer = KustomizeDeployer(config)
        deployer.cleanup(RunContext(timeout=args.timeout))
        print(f"Cleaned up {config.kustomize_path}")
        return 0
    except KudeployError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.exception("Cleanup failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
