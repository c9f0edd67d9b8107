#!/usr/bin/env python3
"""
Run the ingestion pipeline on local files and print the report.

Useful for checking an export before handing it to the configurator: shows
which model file would be picked, which buffers and images could not be
resolved and which legacy materials were migrated.

Usage:
    python scripts/ingest_files.py shirt.gltf shirt.bin textures/diffuse.png
    python scripts/ingest_files.py shirt.zip --json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.config import get_settings, setup_logging
from core.ingestion import IngestionOrchestrator
from core.resources import ObjectUrlRegistry, load_files_from_paths
from core.utils.exceptions import BaseAPIException

logger = logging.getLogger(__name__)


async def ingest_paths(paths: List[str], inspect_models: bool = True) -> Dict[str, Any]:
    """Ingest local files and return the ingestion report"""
    settings = get_settings()
    registry = ObjectUrlRegistry()
    orchestrator = IngestionOrchestrator(
        registry,
        default_roughness=settings.ingestion.legacy_default_roughness,
        default_metallic=settings.ingestion.legacy_default_metallic,
        inspect_models=inspect_models,
    )

    files = await load_files_from_paths(paths)
    result = await orchestrator.ingest(files)
    report = result.to_dict()
    report["published_resources"] = len(result.resources)
    result.resources.release()
    return report


def print_report(report: Dict[str, Any]):
    print(f"\nModel: {report['model_name']} ({report['kind']})")
    print(f"   Published resources: {report['published_resources']}")

    if report["missing_resources"]:
        print(f"\nMissing resources ({len(report['missing_resources'])}):")
        for uri in report["missing_resources"]:
            print(f"   - {uri}")
    else:
        print("\nAll referenced resources resolved")

    if report["migrated_materials"]:
        print(f"\nMigrated legacy materials: {', '.join(report['migrated_materials'])}")

    for key, value in report["model_info"].items():
        print(f"   {key}: {value}")


def main():
    parser = argparse.ArgumentParser(description="Check a 3D asset export against the ingestion pipeline")
    parser.add_argument("paths", nargs="+", help="Model file, side resources and/or zip archives")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument(
        "--no-inspect",
        action="store_true",
        help="Skip trimesh statistics for binary models",
    )

    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.logging)

    try:
        report = asyncio.run(ingest_paths(args.paths, inspect_models=not args.no_inspect))
    except FileNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(2)
    except BaseAPIException as e:
        print(f"Ingestion failed [{e.error_code}]: {e.message}")
        sys.exit(1)

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        print_report(report)

    sys.exit(1 if report["missing_resources"] else 0)


if __name__ == "__main__":
    main()
