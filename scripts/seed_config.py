#!/usr/bin/env python3
"""
Inspect or write the durable SystemConfig document.
"""

import argparse
import sys
import json
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from brandrag.core.config import ConfigService, SystemConfig, default_system_config
from brandrag.core.dao import VectorDAO
from brandrag.core.schema import PersistenceError


def main():
    parser = argparse.ArgumentParser(
        description="Manage the engine's durable SystemConfig",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --show                   # Print the effective configuration
  %(prog)s --file config.json       # Validate and store a config document
  %(prog)s                          # Store the built-in defaults

Documents use the camelCase layout, e.g.
  {"rateLimiting": {"enabled": true, "userMaxPerHour": 20}}
Missing sections and fields are filled from defaults.
        """
    )

    parser.add_argument(
        "--show",
        action="store_true",
        help="Print the effective configuration and exit"
    )

    parser.add_argument(
        "--file", "-f",
        help="JSON file holding the config document to store"
    )

    parser.add_argument(
        "--db",
        help="Database path (defaults to DB_PATH)"
    )

    args = parser.parse_args()

    if args.show and args.file:
        parser.error("--show cannot be combined with --file")

    dao = VectorDAO(args.db)
    service = ConfigService(dao)

    if args.show:
        print(json.dumps(service.load().to_document(), indent=2))
        return

    if args.file:
        try:
            document = json.loads(Path(args.file).read_text())
            config = SystemConfig.model_validate(document)
        except (OSError, json.JSONDecodeError) as e:
            print(f"Could not read {args.file}: {e}")
            sys.exit(1)
        except ValidationError as e:
            print(f"Invalid config document:\n{e}")
            sys.exit(1)
    else:
        config = default_system_config()

    try:
        service.save(config)
    except PersistenceError as e:
        print(f"Failed to store config: {e}")
        sys.exit(1)

    print(json.dumps(config.to_document(), indent=2))


if __name__ == "__main__":
    main()
