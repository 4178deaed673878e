from __future__ import annotations

import json
from pathlib import Path

from conftest import StaticSegmentation, make_square_mask
from liftbg import cli
from liftbg.codec import decode_image
from liftbg.pipeline import MODEL_REGISTRY


class SquareModel(StaticSegmentation):
    def __init__(self, weights_root, device, use_tensorrt, instance_threshold):
        super().__init__([make_square_mask()])


class EmptyModel(StaticSegmentation):
    def __init__(self, weights_root, device, use_tensorrt, instance_threshold):
        super().__init__([])


def test_cli_writes_trimmed_png_and_report(monkeypatch, tmp_path: Path, square_png: Path) -> None:
    monkeypatch.setitem(MODEL_REGISTRY, "isnet", SquareModel)
    report = tmp_path / "report.json"

    code = cli.run([str(square_png), "--weights-dir", str(tmp_path), "--json", str(report)])

    output = square_png.with_name("square_lifted.png")
    assert code == 0
    assert decode_image(output).size == (41, 41)
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert payload["processed_size"] == [41, 41]
    assert payload["bounding_box"] == [0, 0, 40, 40]


def test_cli_reports_failure(monkeypatch, tmp_path: Path, square_png: Path) -> None:
    monkeypatch.setitem(MODEL_REGISTRY, "isnet", EmptyModel)
    output = tmp_path / "out.png"

    code = cli.run([str(square_png), "-o", str(output), "--weights-dir", str(tmp_path)])

    assert code == 1
    assert not output.exists()
