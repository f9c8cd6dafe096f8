import json
from pathlib import Path
from typing import List

import cv2
import numpy as np
import pytest
from rich.console import Console

from atlas_splitter.extractor import AtlasSplitter, main
from tests.test_utils import make_atlas


def write_atlas(tmp_path: Path, atlas: np.ndarray) -> str:
    path = tmp_path / "atlas.png"
    cv2.imwrite(str(path), atlas)
    return str(path)


def write_manifest(tmp_path: Path, sprites: List[dict]) -> str:
    path = tmp_path / "atlas.json"
    path.write_text(json.dumps({"sprites": sprites}))
    return str(path)


def cli_args(tmp_path: Path, *extra: str) -> List[str]:
    return ["--log-file", str(tmp_path / "export.log"), *extra]


def test_manifest_export(tmp_path: Path) -> None:
    atlas = make_atlas(4, 4)
    atlas_path = write_atlas(tmp_path, atlas)
    manifest = write_manifest(tmp_path, [
        {"name": "A", "x": 0, "y": 0, "width": 2, "height": 2},
        {"name": "B", "x": 1, "y": 1, "width": 2, "height": 2},
    ])
    out = tmp_path / "out"

    code = main([atlas_path, str(out), "--sprites", manifest, "--metadata", *cli_args(tmp_path)])

    assert code == 0
    assert sorted(p.name for p in out.iterdir()) == ["A.png", "sprites_metadata.json"]
    assert np.array_equal(cv2.imread(str(out / "A.png"), cv2.IMREAD_UNCHANGED), atlas[0:2, 0:2])

    metadata = json.loads((out / "sprites_metadata.json").read_text())
    assert metadata["total_files"] == 1
    assert metadata["groups"] == [{
        "leader": "A", "followers": ["B"],
        "x": 0, "y": 0, "width": 2, "height": 2,
        "filename": "A.png",
    }]
    assert metadata["settings"]["strategy"] == "single-hop"


def test_bottom_left_manifest(tmp_path: Path) -> None:
    atlas = make_atlas(4, 4)
    atlas_path = write_atlas(tmp_path, atlas)
    manifest = write_manifest(tmp_path, [{"name": "low", "x": 0, "y": 0, "width": 2, "height": 1}])
    out = tmp_path / "out"

    code = main([atlas_path, str(out), "--sprites", manifest, "--origin", "bottom-left",
                 *cli_args(tmp_path)])

    assert code == 0
    assert np.array_equal(cv2.imread(str(out / "low.png"), cv2.IMREAD_UNCHANGED), atlas[3:4, 0:2])


def test_grid_export(tmp_path: Path) -> None:
    atlas = make_atlas(4, 2)
    atlas_path = write_atlas(tmp_path, atlas)
    out = tmp_path / "out"

    assert main([atlas_path, str(out), "--grid-size", "2", "2", *cli_args(tmp_path)]) == 0
    assert sorted(p.name for p in out.iterdir()) == ["atlas_0.png", "atlas_1.png"]


def test_empty_manifest_returns_error(tmp_path: Path) -> None:
    atlas_path = write_atlas(tmp_path, make_atlas())
    manifest = write_manifest(tmp_path, [])
    out = tmp_path / "out"

    assert main([atlas_path, str(out), "--sprites", manifest, *cli_args(tmp_path)]) == 1
    assert not out.exists()


def test_unreadable_atlas_returns_error(tmp_path: Path) -> None:
    bogus = tmp_path / "atlas.png"
    bogus.write_bytes(b"not an image")
    manifest = write_manifest(tmp_path, [{"name": "a", "x": 0, "y": 0, "width": 1, "height": 1}])

    assert main([str(bogus), str(tmp_path / "out"), "--sprites", manifest, *cli_args(tmp_path)]) == 1
    assert "not readable" in (tmp_path / "export.log").read_text()


def test_duplicate_names_rejected_by_default(tmp_path: Path) -> None:
    atlas_path = write_atlas(tmp_path, make_atlas())
    entry = {"name": "a", "x": 0, "y": 0, "width": 1, "height": 1}
    manifest = write_manifest(tmp_path, [entry, entry])

    assert main([atlas_path, str(tmp_path / "out"), "--sprites", manifest, *cli_args(tmp_path)]) == 1
    assert main([atlas_path, str(tmp_path / "out"), "--sprites", manifest,
                 "--duplicates", "rename", *cli_args(tmp_path)]) == 0


@pytest.mark.parametrize(
    "argv",
    [
        ["atlas.png", "out"],
        ["atlas.png", "out", "--sprites", "a.json", "--grid-size", "2", "2"],
        ["atlas.png", "out", "--grid-size", "0", "2"],
        ["atlas.png", "out", "--sprites", "a.json", "--strategy", "transitive"],
    ],
)
def test_invalid_arguments(argv: List[str]) -> None:
    splitter = AtlasSplitter(Console())
    with pytest.raises(SystemExit):
        splitter.parse_arguments(argv)


def test_build_settings() -> None:
    splitter = AtlasSplitter(Console())
    args = splitter.parse_arguments(
        ["atlas.png", "out", "--grid-size", "8", "16", "--strategy", "connected", "--no-create-dir"]
    )
    settings = splitter.build_settings(args)
    assert settings.grid_size == (8, 16)
    assert settings.strategy == "connected"
    assert settings.create_output_dir is False
    assert settings.duplicate_policy == "error"


def test_metadata_skipped_when_output_dir_missing(tmp_path: Path) -> None:
    atlas_path = write_atlas(tmp_path, make_atlas())
    manifest = write_manifest(tmp_path, [{"name": "a", "x": 0, "y": 0, "width": 2, "height": 2}])
    out = tmp_path / "missing"

    code = main([atlas_path, str(out), "--sprites", manifest, "--no-create-dir", "--metadata",
                 *cli_args(tmp_path)])

    assert code == 0
    assert not out.exists()
    log = (tmp_path / "export.log").read_text()
    assert "metadata not saved" in log
    assert "Unhandled exception" not in log


def test_metadata_lists_nested_filenames(tmp_path: Path) -> None:
    atlas_path = write_atlas(tmp_path, make_atlas())
    path = tmp_path / "frames.json"
    path.write_text(json.dumps(
        {"frames": {"walk/01.png": {"frame": {"x": 0, "y": 0, "w": 2, "h": 2}}}}
    ))
    out = tmp_path / "out"

    assert main([atlas_path, str(out), "--sprites", str(path), "--metadata", *cli_args(tmp_path)]) == 0
    metadata = json.loads((out / "sprites_metadata.json").read_text())
    assert metadata["groups"][0]["filename"] == "walk/01.png"
    assert (out / "walk" / "01.png").exists()
