#!/usr/bin/env python3
"""
Re-run the behaviour processing scripts for one home.

Uses the files already saved in <PROCESSING_ROOT>/<home>/downloads, so a
batch that failed half-way can be finished without uploading it again.
Every step runs again from the start, including the ones that succeeded
last time.

Usage:
    python -m scripts.rerun_pipeline ONCB
    python -m scripts.rerun_pipeline ONCB --skip-install
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import asyncio
import logging

from config import load_processing_config
from services.pipeline import StepPolicy, build_default_steps, run_pipeline
from services.upload_materializer import home_directories
from utils.errors import PipelineStepError, ValidationError


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Re-run the behaviour pipeline for a home")
    parser.add_argument("home", help="Home code (folder name under PROCESSING_ROOT)")
    parser.add_argument("--skip-install", action="store_true", help="Skip the pip install step")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    args = parse_args(argv)
    config = load_processing_config()

    try:
        home_dir, downloads_dir = home_directories(config.processing_root, args.home)
    except ValidationError as e:
        print(f"Error: {e}")
        return 2
    if not home_dir.is_dir():
        print(f"Error: home folder not found: {home_dir}")
        return 2

    files = sorted(p.name for p in downloads_dir.glob("*") if p.is_file()) if downloads_dir.is_dir() else []
    print(f"Home folder: {home_dir}")
    print(f"Files in downloads: {len(files)}")
    for name in files:
        print(f"   {name}")
    print()

    steps = build_default_steps(config)
    if args.skip_install:
        steps = [s for s in steps if s.policy is not StepPolicy.BEST_EFFORT]

    try:
        records = asyncio.run(run_pipeline(steps, home_dir, timeout=config.step_timeout_seconds))
    except PipelineStepError as e:
        print(f"❌ {e}")
        return 1

    for record in records:
        mark = "✅" if record.ok else "⚠️"
        print(f"{mark} {record.step}")
    print("Pipeline completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
