#!/usr/bin/env python3
"""
Command-line access to the REDCap API

Examples:
    redcap-client export_arms
    redcap-client delete_dags --values group_a,group_b
    redcap-client switch_dag --param dag=group_a --format xml
"""

import sys
import argparse
import logging

from redcap_actions import ACTIONS
from redcap_client import ClientConfig, REDCapClient, RedcapApiError

logger = logging.getLogger(__name__)

CLI_ACTIONS = sorted(name for name, spec in ACTIONS.items() if not spec.multipart)


def parse_params(pairs):
    params = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise ValueError(f"Expected key=value, got '{pair}'")
        if key == 'token':
            raise ValueError("Pass the API token with --token, not --param")
        params[key] = value
    return params


def build_parser():
    parser = argparse.ArgumentParser(description='Send a single request to the REDCap API and print the response')
    parser.add_argument('action', choices=CLI_ACTIONS, metavar='action',
                        help='API action, e.g. export_arms or delete_dags')
    parser.add_argument('--url', help='REDCap API URL (default: $REDCAP_API_URL)')
    parser.add_argument('--token', help='API token (default: $REDCAP_API_TOKEN)')
    parser.add_argument('--format', choices=['json', 'xml', 'csv'],
                        help='Response format (default: $REDCAP_RESPONSE_FORMAT or json)')
    parser.add_argument('--timeout', type=float, help='Request timeout in seconds (default: $REDCAP_TIMEOUT)')
    parser.add_argument('--values', default='',
                        help='Comma-separated list for list actions (arms, dags, events, users, roles, records)')
    parser.add_argument('--param', action='append', metavar='KEY=VALUE',
                        help='Extra REDCap parameter; may be repeated')
    parser.add_argument('--verbose', action='store_true', help='Log request details')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        config = ClientConfig.from_env(
            base_url=args.url,
            api_token=args.token,
            response_format=args.format,
            timeout=args.timeout,
        )
        params = parse_params(args.param)
    except ValueError as e:
        parser.error(str(e))

    values = [v.strip() for v in args.values.split(',') if v.strip()]

    with REDCapClient(config) as client:
        try:
            response = client.call(args.action, values or None, **params)
        except RedcapApiError as e:
            logger.error(f"Error calling {args.action}: {e}")
            return 1

    logger.debug(f"HTTP {response.status_code}")
    print(response.text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
