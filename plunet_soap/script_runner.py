# plunet_soap/script_runner.py
"""
Script runner utilities for command-line Plunet scripts.

Provides script initialization with:
- MANDATORY configuration files (can start from the example templates)
- Schema validation and secrets injection
- Hard-fail philosophy with clear, actionable error messages

Every script takes positional org_id and env_type; scripts add their own
arguments through ArgumentDefinition.
"""

import argparse
import sys
from dataclasses import dataclass
from typing import Dict, Any, List, Optional

from plunet_soap.config_loader import ConfigLoader
from plunet_soap.exceptions import HelpfulError, ConfigurationError, ValidationError
from plunet_soap.logger import setup_logger

logger = setup_logger()


@dataclass
class ArgumentDefinition:
    """Definition for a command-line argument."""
    name: str
    type: type = str
    help: str = ""
    default: Any = None
    choices: Optional[List[Any]] = None
    required: bool = True
    action: Optional[str] = None


class ScriptRunner:
    """Script runner with configuration management."""

    def __init__(self, description: str):
        self.description = description

    def build_parser(self, extra_args: Optional[List[ArgumentDefinition]] = None) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description=self.description,
            formatter_class=argparse.RawDescriptionHelpFormatter
        )

        # Required arguments - always needed
        parser.add_argument("org_id", help="Organization ID (e.g., 'acme')")
        parser.add_argument("env_type", help="Environment type (e.g., 'test', 'prod')")

        for arg_def in extra_args or []:
            kwargs: Dict[str, Any] = {"help": arg_def.help}

            # Optional arguments become --flags
            if arg_def.default is not None or not arg_def.required:
                arg_name = f"--{arg_def.name.replace('_', '-')}"
                kwargs["default"] = arg_def.default
                kwargs["required"] = arg_def.required
            else:
                arg_name = arg_def.name

            if not arg_def.action:
                kwargs["type"] = arg_def.type
            else:
                kwargs["action"] = arg_def.action

            if arg_def.choices:
                kwargs["choices"] = arg_def.choices

            parser.add_argument(arg_name, **kwargs)

        return parser

    def parse_arguments(self, extra_args: Optional[List[ArgumentDefinition]] = None,
                        argv: Optional[List[str]] = None) -> argparse.Namespace:
        return self.build_parser(extra_args).parse_args(argv)

    def load_configuration(self, org_id: str, env_type: str) -> Dict[str, Any]:
        """
        Load and validate configuration.

        Args:
            org_id: Organization identifier
            env_type: Environment type

        Returns:
            Configuration dictionary with injected fields

        Raises:
            HelpfulError: If configuration loading fails
        """
        logger.info(f"Starting {self.description}")
        logger.info(f"Configuration: {org_id}-{env_type}")

        try:
            config_loader = ConfigLoader(org_id, env_type)
            config = config_loader.load_config(validate=True, include_secrets=True)
        except HelpfulError:
            raise  # Already formatted nicely
        except (ConfigurationError, ValidationError) as e:
            raise HelpfulError(
                what_went_wrong=f"Configuration validation failed: {e}",
                how_to_fix=(
                    f"Check your configuration files:\n"
                    f"  1. Verify config/{org_id}-{env_type}-config.json matches the schema\n"
                    f"  2. Verify config/{org_id}-{env_type}-config-secrets.json is a flat JSON object\n"
                    f"  3. Verify the 'plunet' section has at least 'base-host'"
                ),
                example=f"cp config/acme-test-config_example.json config/{org_id}-{env_type}-config.json"
            ) from e

        # Inject standard fields (always present)
        config["_org_id"] = org_id
        config["_env_type"] = env_type

        return config

    def run(self, extra_args: Optional[List[ArgumentDefinition]] = None,
            argv: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Parse args and load config.

        Returns:
            Configuration dictionary; extra arguments are injected as "_<name>"
        """
        args = self.parse_arguments(extra_args, argv)
        config = self.load_configuration(args.org_id, args.env_type)

        for arg_def in extra_args or []:
            attr_name = arg_def.name.replace('-', '_')
            if hasattr(args, attr_name):
                config[f"_{attr_name}"] = getattr(args, attr_name)

        return config


def parse_custom_args_and_load_config(description: str,
                                      custom_args: Optional[List[ArgumentDefinition]] = None,
                                      argv: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Parse arguments with custom additions and load configuration.

    Exits with code 1 on HelpfulError or unexpected errors, 130 on Ctrl-C.

    Example:
        custom_args = [
            ArgumentDefinition("resource", help="Plunet resource, e.g. DataCustomer30"),
            ArgumentDefinition("args_json", required=False, default="{}", help="Arguments as JSON"),
        ]
        config = parse_custom_args_and_load_config("Call Plunet", custom_args)
    """
    try:
        runner = ScriptRunner(description)
        return runner.run(extra_args=custom_args, argv=argv)

    except HelpfulError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Script interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        sys.exit(1)
