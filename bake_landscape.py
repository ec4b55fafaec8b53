# bake_landscape.py

"""
================================================================================
OFFLINE LANDSCAPE BAKER SCRIPT
================================================================================
This script is a command-line tool for pre-computing the geometry buffers of a
memory landscape for one or more seeds ("baking"). The journey is mapped to
features once; every seed is then synthesized independently in a worker
process and written to disk as a compressed .npz file, together with a PNG
preview of each height field.

The bake directory also receives:
    - journey.json: the exact journey that was baked.
    - generation_config.json: the parameters every engine was built with.
    - manifest.json: the SHA-256 of every buffer, for fidelity_probe.py.

Usage:
    python bake_landscape.py --journey path/to/journey.json --seeds 1 2 3
================================================================================
"""
import os
import sys
import json
import logging
import argparse
import time
import hashlib
import multiprocessing
import numpy as np
from PIL import Image
from tqdm import tqdm

# Add project root to Python path to allow importing from memory_landscape
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from memory_landscape.feature_mapping import export_config, map_journey_to_features
from memory_landscape.sample_journey import SAMPLE_JOURNEY
from memory_landscape.schema import journey_from_dict
from memory_landscape.sphere import PointCloudEngine
from memory_landscape.terrain import HeightFieldEngine
from memory_landscape import config as DEFAULTS

VARIANTS = ("heightfield", "pointcloud")


def buffer_hash(array: np.ndarray) -> str:
    return hashlib.sha256(np.ascontiguousarray(array).tobytes()).hexdigest()


def synthesize_seed(features, params: dict, seed: int, variants, logger: logging.Logger) -> dict:
    """
    Runs the requested engines for one seed.
    Returns {variant: {buffer_name: np.ndarray}}, plus the grid shape for height fields.
    """
    seed_params = dict(params, seed=seed)
    buffers = {}

    if "heightfield" in variants:
        field = HeightFieldEngine(config=seed_params, logger=logger).generate(features)
        buffers["heightfield"] = {
            "positions": field.positions,
            "colors": field.colors,
            "indices": field.triangle_indices(),
            "grid_shape": np.array([field.rows, field.columns], dtype=np.int64),
        }

    if "pointcloud" in variants:
        cloud = PointCloudEngine(config=seed_params, logger=logger).generate(features)
        buffers["pointcloud"] = {
            "positions": cloud.positions,
            "colors": cloud.colors,
            "sizes": cloud.sizes,
            "counts": np.array([cloud.base_count, cloud.cluster_count], dtype=np.int64),
        }

    return buffers


def save_height_preview(field_buffers: dict, file_path: str) -> None:
    """Writes the vertex colors of a height field as a top-down RGB image."""
    rows, columns = (int(v) for v in field_buffers["grid_shape"])
    colors = field_buffers["colors"].reshape(rows, columns, 3)
    img_data = (np.clip(colors, 0.0, 1.0) * 255).round().astype(np.uint8)
    Image.fromarray(img_data, 'RGB').save(file_path, 'PNG')


# --- Global variables for worker processes ---
worker_features = None
worker_params = {}
worker_variants = ()
worker_output_dir = ""
worker_logger = None


def init_worker(features, params, variants, output_dir):
    """Initializes the global state for each worker process."""
    global worker_features, worker_params, worker_variants, worker_output_dir, worker_logger

    worker_logger = logging.getLogger(f"Worker-{os.getpid()}")
    worker_features = features
    worker_params = params
    worker_variants = variants
    worker_output_dir = output_dir


def process_seed(seed):
    """
    Synthesizes and SAVES the buffers of a single seed. Returns only minimal metadata.
    """
    buffers = synthesize_seed(worker_features, worker_params, seed, worker_variants, worker_logger)
    seed_dir = os.path.join(worker_output_dir, f"seed_{seed}")
    os.makedirs(seed_dir, exist_ok=True)

    seed_results = {'seed': seed, 'hashes': {}}
    for variant, arrays in buffers.items():
        np.savez_compressed(os.path.join(seed_dir, f"{variant}.npz"), **arrays)
        seed_results['hashes'][variant] = {name: buffer_hash(array) for name, array in arrays.items()}
        if variant == "heightfield":
            save_height_preview(arrays, os.path.join(seed_dir, "heightfield_preview.png"))

    return seed_results


# --- Main Baking Function ---
def bake_landscape(
    journey_path: str = None,
    output_dir: str = "baked_landscapes",
    seeds=None,
    variant: str = "both",
    config_path: str = None,
    workers: int = None,
):
    """
    Loads a journey and a configuration, synthesizes every seed and saves the
    buffers, manifest and generation config to `output_dir`.

    `workers=0` bakes in the calling process. Returns the output directory,
    or None if the inputs could not be loaded.
    """
    logger = logging.getLogger("Baker")

    # 1. --- Load Journey ---
    try:
        if journey_path:
            logger.info(f"Loading journey from: {journey_path}")
            with open(journey_path, 'r', encoding='utf-8') as f:
                journey_raw = json.load(f)
        else:
            logger.info("No journey given, baking the bundled sample journey.")
            journey_raw = SAMPLE_JOURNEY
        journey = journey_from_dict(journey_raw)
    except (FileNotFoundError, json.JSONDecodeError, ValueError) as e:
        logger.critical(f"Failed to load or parse journey: {e}")
        return None

    # 2. --- Load Configuration ---
    params = {}
    if config_path:
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, 'r') as f:
                params = json.load(f).get('landscape_parameters', {})
        except (FileNotFoundError, json.JSONDecodeError) as e:
            logger.critical(f"Failed to load or parse config file: {e}")
            return None

    seeds = list(seeds) if seeds else [params.get('seed', DEFAULTS.DEFAULT_SEED)]
    variants = VARIANTS if variant == "both" else (variant,)

    # 3. --- Map Features Once ---
    try:
        features = map_journey_to_features(journey, params)
    except ValueError as e:
        logger.critical(f"Invalid landscape parameters: {e}")
        return None
    logger.info(
        f"Mapped {len(features.hubs)} locations, {len(features.children)} memories "
        f"and {len(features.connections)} connections."
    )

    # 4. --- Prepare Output Directory ---
    os.makedirs(output_dir, exist_ok=True)
    with open(os.path.join(output_dir, "journey.json"), 'w', encoding='utf-8') as f:
        json.dump(journey_raw, f, indent=2, ensure_ascii=False)

    # 5. --- Main Baking Loop (Parallelized) ---
    logger.info(f"Starting bake of {len(seeds)} seed(s), variants: {', '.join(variants)}")
    start_time = time.perf_counter()
    manifest = {'variants': list(variants), 'seeds': {}}
    init_args = (features, params, variants, output_dir)

    if workers == 0:
        init_worker(*init_args)
        results = [process_seed(seed) for seed in tqdm(seeds, desc="Baking Seeds")]
    else:
        num_workers = workers or max(1, min(len(seeds), multiprocessing.cpu_count() - 1))
        logger.info(f"Using {num_workers} worker processes.")
        with multiprocessing.Pool(processes=num_workers, initializer=init_worker, initargs=init_args) as pool:
            results = list(tqdm(pool.imap_unordered(process_seed, seeds), total=len(seeds), desc="Baking Seeds"))

    for result in results:
        manifest['seeds'][str(result['seed'])] = result['hashes']

    # --- Finalization ---
    with open(os.path.join(output_dir, "manifest.json"), 'w') as f:
        json.dump(manifest, f, indent=2, sort_keys=True)
    with open(os.path.join(output_dir, "generation_config.json"), 'w') as f:
        json.dump({'landscape_parameters': export_config(params), 'seeds': seeds, 'variants': list(variants)}, f, indent=2)

    end_time = time.perf_counter()
    logger.info(f"Baking complete! Total time: {end_time - start_time:.2f} seconds.")
    logger.info(f"Baked landscape and manifest.json saved to: {output_dir}")
    return output_dir


def main(argv=None):
    parser = argparse.ArgumentParser(description="Offline baker for memory landscape geometry.")
    parser.add_argument("--journey", type=str, default=None,
                        help="Path to a journey JSON file. Defaults to the bundled sample journey.")
    parser.add_argument("--output", type=str, default="baked_landscapes",
                        help="Directory the baked buffers are written to.")
    parser.add_argument("--seeds", type=int, nargs="+", default=None,
                        help="One or more seeds to bake.")
    parser.add_argument("--variant", choices=("heightfield", "pointcloud", "both"), default="both",
                        help="Which synthesis engine(s) to run.")
    parser.add_argument("--config", type=str, default=None,
                        help="JSON file with a 'landscape_parameters' object overriding the defaults.")
    parser.add_argument("--workers", type=int, default=None,
                        help="Worker processes (0 bakes in-process).")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )
    result = bake_landscape(args.journey, args.output, args.seeds, args.variant, args.config, args.workers)
    return 0 if result else 1


# --- Command-Line Interface ---
if __name__ == "__main__":
    sys.exit(main())
