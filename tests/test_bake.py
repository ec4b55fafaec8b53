# tests/test_bake.py

import json
import os

import numpy as np
import pytest
from PIL import Image

import bake_landscape
import fidelity_probe


@pytest.fixture
def tiny_config_file(tmp_path, tiny_config):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({'landscape_parameters': tiny_config}))
    return str(path)


def test_bake_then_probe_round_trip(tmp_path, tiny_config_file):
    out_dir = str(tmp_path / "bake")
    result = bake_landscape.bake_landscape(
        journey_path=None, output_dir=out_dir, seeds=[3, 4], variant="both",
        config_path=tiny_config_file, workers=0,
    )
    assert result == out_dir

    with open(os.path.join(out_dir, "manifest.json")) as f:
        manifest = json.load(f)
    assert sorted(manifest['seeds']) == ["3", "4"]
    assert set(manifest['seeds']["3"]) == {"heightfield", "pointcloud"}
    assert manifest['seeds']["3"]["heightfield"]["positions"] != manifest['seeds']["4"]["heightfield"]["positions"]

    with np.load(os.path.join(out_dir, "seed_3", "heightfield.npz")) as buffers:
        rows, columns = buffers["grid_shape"]
        assert buffers["positions"].shape == (rows * columns * 3,)

    preview = Image.open(os.path.join(out_dir, "seed_3", "heightfield_preview.png"))
    assert preview.size == (9, 7)

    assert fidelity_probe.run_full_probe(out_dir) is True


def test_probe_detects_a_tampered_manifest(tmp_path, tiny_config_file):
    out_dir = str(tmp_path / "bake")
    bake_landscape.bake_landscape(
        output_dir=out_dir, seeds=[5], variant="heightfield", config_path=tiny_config_file, workers=0,
    )
    manifest_path = os.path.join(out_dir, "manifest.json")
    with open(manifest_path) as f:
        manifest = json.load(f)
    manifest['seeds']["5"]["heightfield"]["colors"] = "0" * 64
    with open(manifest_path, 'w') as f:
        json.dump(manifest, f)

    assert fidelity_probe.run_full_probe(out_dir) is False


def test_missing_inputs_are_reported_not_raised(tmp_path):
    assert bake_landscape.bake_landscape(journey_path=str(tmp_path / "nope.json"), output_dir=str(tmp_path)) is None
    assert fidelity_probe.run_full_probe(str(tmp_path / "never-baked")) is False


def test_cli_entry_point(tmp_path, tiny_config_file):
    out_dir = str(tmp_path / "cli")
    code = bake_landscape.main([
        "--output", out_dir, "--seeds", "9", "--variant", "pointcloud",
        "--config", tiny_config_file, "--workers", "0",
    ])
    assert code == 0
    assert os.path.exists(os.path.join(out_dir, "seed_9", "pointcloud.npz"))
    assert fidelity_probe.main(["--bake-dir", out_dir]) == 0


def test_string_keyed_tables_bake_and_reproduce(tmp_path, tiny_config):
    neutral = {"amplitude_scale": 1.0, "roughness_scale": 1.0, "ridge_scale": 1.0, "sentiment_bias": 0.0}
    modifiers = {kind: dict(neutral) for kind in ('document', 'letter', 'receipt')}
    modifiers['photo'] = dict(neutral, amplitude_scale=2.0)
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({'landscape_parameters': dict(tiny_config, document_kind_modifiers=modifiers)}))

    out_dir = str(tmp_path / "bake")
    assert bake_landscape.bake_landscape(
        output_dir=out_dir, seeds=[2], variant="heightfield", config_path=str(config_path), workers=0,
    ) == out_dir
    with open(os.path.join(out_dir, "generation_config.json")) as f:
        recorded = json.load(f)['landscape_parameters']
    assert recorded['document_kind_modifiers'] == modifiers
    assert fidelity_probe.run_full_probe(out_dir) is True


def test_incomplete_table_is_reported_not_raised(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({'landscape_parameters': {'language_tints': {'zh': {"color": [1, 0, 0], "strength": 0.3}}}}))
    assert bake_landscape.bake_landscape(output_dir=str(tmp_path / "bake"), config_path=str(config_path), workers=0) is None
