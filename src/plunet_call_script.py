# src/plunet_call_script.py
"""
Call one Plunet operation from the command line.

Usage:
    python src/plunet_call_script.py <org_id> <env_type> <resource> <operation> [--args-json JSON]

Example:
    python src/plunet_call_script.py acme test DataCustomer30 getCustomerObject --args-json '{"customerID": 42}'
    python src/plunet_call_script.py acme test PlunetAPI getPlunetVersion

Prints the result dict as JSON. Needs config/<org>-<env>-config.json and
config/<org>-<env>-config-secrets.json (see the *_example.json templates).
"""

import json
import sys
from typing import Dict, Any

from plunet_soap.client import create_plunet_client
from plunet_soap.exceptions import HelpfulError, PlunetApiError, ValidationError
from plunet_soap.logger import setup_logger
from plunet_soap.operations import list_operations, list_resources
from plunet_soap.script_runner import ArgumentDefinition, parse_custom_args_and_load_config

logger = setup_logger()

CUSTOM_ARGS = [
    ArgumentDefinition("resource", help="Plunet resource, e.g. DataCustomer30"),
    ArgumentDefinition("operation", help="Operation name, e.g. getCustomerObject"),
    ArgumentDefinition("args_json", required=False, default="{}",
                       help="Operation arguments as a JSON object"),
]


def parse_arguments_json(raw: str) -> Dict[str, Any]:
    """
    Raises:
        HelpfulError: If the text is not a JSON object
    """
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError as e:
        raise HelpfulError(
            what_went_wrong=f"--args-json is not valid JSON: {e}",
            how_to_fix="Quote the JSON object for your shell",
            example="--args-json '{\"customerID\": 42}'"
        ) from e

    if not isinstance(arguments, dict):
        raise HelpfulError(
            what_went_wrong=f"--args-json must be a JSON object, got {type(arguments).__name__}",
            how_to_fix="Pass parameter names as keys",
            example="--args-json '{\"jobID\": 7, \"projectType\": 3}'"
        )
    return arguments


def run_call(config: Dict[str, Any]) -> Dict[str, Any]:
    """Execute the configured call and return its result dict."""
    resource = config["_resource"]
    operation = config["_operation"]
    arguments = parse_arguments_json(config["_args_json"])

    with create_plunet_client(config) as client:
        try:
            return client.call(resource, operation, arguments)
        except ValidationError as e:
            if e.field == 'resource':
                example = f"Resources: {', '.join(list_resources())}"
            elif e.field == 'operation':
                example = f"Operations for {resource}: {', '.join(list_operations(resource))}"
            else:
                example = None
            raise HelpfulError(
                what_went_wrong=str(e),
                how_to_fix="Check the resource, operation and argument names",
                example=example
            ) from e


def main():
    config = parse_custom_args_and_load_config("Plunet SOAP call", CUSTOM_ARGS)

    try:
        result = run_call(config)
    except HelpfulError as e:
        logger.error(str(e))
        sys.exit(1)
    except PlunetApiError as e:
        logger.error(f"❌ Plunet call failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Script interrupted by user")
        sys.exit(130)

    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
    logger.info(f"✅ {config['_resource']}.{config['_operation']} completed for "
                f"{config['_org_id']}-{config['_env_type']}")


if __name__ == "__main__":
    main()
