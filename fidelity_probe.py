# fidelity_probe.py

"""
================================================================================
BAKE FIDELITY PROBE
================================================================================
Re-synthesizes every seed of a bake directory from its recorded journey and
generation config, then compares the SHA-256 of each fresh buffer with the
one stored in manifest.json. Any mismatch means synthesis is not deterministic
(or the bake is stale).

Usage:
    python fidelity_probe.py --bake-dir baked_landscapes
================================================================================
"""
import os
import sys
import json
import logging
import argparse

sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from bake_landscape import buffer_hash, synthesize_seed
from memory_landscape.feature_mapping import map_journey_to_features
from memory_landscape.schema import load_journey


def run_probe_on_seed(logger, features, params, variants, seed, expected) -> bool:
    """Helper function to run the fidelity probe on a single baked seed."""
    logger.info(f"--- Probing Seed {seed} ---")
    buffers = synthesize_seed(features, params, seed, variants, logger)

    seed_passed = True
    for variant in variants:
        for name, array in buffers[variant].items():
            baked = expected.get(variant, {}).get(name)
            live = buffer_hash(array)
            result = "PASS" if baked == live else "FAIL"
            if result == "FAIL":
                seed_passed = False
            logger.info(f"  - {variant}/{name}: {result}")
    return seed_passed


def run_full_probe(bake_dir: str) -> bool:
    logger = logging.getLogger("FidelityProbe")

    # --- 1. Load Baked Manifest ---
    manifest_path = os.path.join(bake_dir, "manifest.json")
    logger.info(f"Loading manifest from '{manifest_path}'...")
    try:
        with open(manifest_path, 'r') as f:
            manifest = json.load(f)
    except FileNotFoundError:
        logger.critical(f"Manifest not found. Run bake_landscape.py first to create '{bake_dir}'.")
        return False

    # --- 2. Load the GENERATION config and the baked journey ---
    with open(os.path.join(bake_dir, "generation_config.json"), 'r') as f:
        generation_config = json.load(f)
    params = generation_config.get('landscape_parameters', {})
    variants = tuple(generation_config.get('variants', manifest.get('variants', [])))

    journey = load_journey(os.path.join(bake_dir, "journey.json"))
    features = map_journey_to_features(journey, params)

    # --- 3. Re-synthesize and compare every seed ---
    all_probes_passed = True
    for seed_key, expected in sorted(manifest['seeds'].items(), key=lambda item: int(item[0])):
        if not run_probe_on_seed(logger, features, params, variants, int(seed_key), expected):
            all_probes_passed = False

    logger.info("--- Full Probe Complete ---")
    if all_probes_passed:
        logger.info("SUCCESS: All baked buffers are reproduced exactly.")
    else:
        logger.error("FAILURE: Mismatch detected in one or more buffers.")
    return all_probes_passed


def main(argv=None):
    parser = argparse.ArgumentParser(description="Checks a bake directory against fresh synthesis.")
    parser.add_argument("--bake-dir", type=str, default="baked_landscapes",
                        help="Directory written by bake_landscape.py.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    return 0 if run_full_probe(args.bake_dir) else 1


if __name__ == '__main__':
    sys.exit(main())
