"""Tests for configuration handling and the command line entry point."""

import json
import logging

import pytest

from svg_to_stl import (
    ConversionConfig,
    config_from_args,
    load_outlines,
    main,
    parse_args,
    read_ascii_stl,
)


class TestConversionConfig:
    """Tests for ConversionConfig."""

    def test_defaults(self):
        cfg = ConversionConfig()
        assert cfg.thickness == 1.0
        assert cfg.solid_name == "MyObject"
        assert cfg.triangulation == "fan"
        assert cfg.winding == "auto"

    def test_needs_a_source(self):
        errors = ConversionConfig().validate()
        assert any("input_path or text" in e for e in errors)

    def test_rejects_two_sources(self):
        errors = ConversionConfig(input_path="a.svg", text="hi").validate()
        assert any("input_path or text" in e for e in errors)

    def test_valid(self):
        assert ConversionConfig(input_path="a.svg").validate() == []
        assert ConversionConfig(text="hi", thickness=0.0).validate() == []

    def test_invalid_values(self):
        cfg = ConversionConfig(
            input_path="a.svg",
            segment_length=0.0,
            scale=-1.0,
            stroke_width=-2.0,
            simplify=-0.1,
            font_size=0.0,
            triangulation="delaunay",
            winding="sideways",
            solid_name="two words",
            thickness=float("nan"),
        )
        errors = cfg.validate()
        assert len(errors) == 9

    def test_save_load_round_trip(self, tmp_path):
        cfg = ConversionConfig(input_path="a.svg", thickness=2.5, solid_name="Part", triangulation="earcut")
        path = tmp_path / "cfg.json"
        cfg.save(path)
        assert ConversionConfig.load(path) == cfg

    def test_load_missing_gives_defaults(self, tmp_path):
        assert ConversionConfig.load(tmp_path / "missing.json") == ConversionConfig()

    def test_from_dict_ignores_unknown_keys(self):
        cfg = ConversionConfig.from_dict({"thickness": 3.0, "colour": "red"})
        assert cfg.thickness == 3.0

    def test_load_rejects_non_object(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            ConversionConfig.load(path)


class TestConfigFromArgs:
    """Tests for merging command line options over a config file."""

    def test_defaults_from_command_line(self):
        cfg = config_from_args(parse_args(["drawing.svg"]))
        assert cfg.input_path == "drawing.svg"
        assert cfg.text is None
        assert cfg.output_path == "out.stl"
        assert cfg.flip_y is False

    def test_command_line_overrides_file(self, tmp_path):
        path = tmp_path / "cfg.json"
        ConversionConfig(input_path="a.svg", thickness=5.0, solid_name="FromFile", scale=3.0).save(path)

        cfg = config_from_args(parse_args(["--config", str(path), "--thickness", "2", "--flip-y"]))
        assert cfg.input_path == "a.svg"
        assert cfg.thickness == 2.0
        assert cfg.solid_name == "FromFile"
        assert cfg.scale == 3.0
        assert cfg.flip_y is True

    def test_text_replaces_file_input(self, tmp_path):
        path = tmp_path / "cfg.json"
        ConversionConfig(input_path="a.svg").save(path)

        cfg = config_from_args(parse_args(["--config", str(path), "--text", "Hi"]))
        assert cfg.text == "Hi"
        assert cfg.input_path is None


class TestMain:
    """End-to-end tests for main()."""

    def test_svg_to_stl(self, square_svg, tmp_path, capsys):
        out = tmp_path / "out" / "square.stl"
        main([str(square_svg), "--out", str(out), "--thickness", "2", "--name", "Square"])

        name, mesh = read_ascii_stl(out)
        assert name == "Square"
        assert len(mesh) == 12
        assert max(v.z for tri in mesh for v in tri) == 2.0

        printed = capsys.readouterr().out
        assert "Wrote STL:" in printed
        assert "Triangles: 12" in printed

    def test_text_to_stl(self, tmp_path):
        out = tmp_path / "text.stl"
        main(["--text", "II", "--font-size", "8", "--out", str(out), "--triangulation", "earcut"])

        name, mesh = read_ascii_stl(out)
        assert name == "MyObject"
        assert len(mesh) > 0

    def test_debug_svg_and_save_config(self, square_svg, tmp_path):
        out = tmp_path / "square.stl"
        preview = tmp_path / "preview.svg"
        saved = tmp_path / "saved.json"
        main([str(square_svg), "--out", str(out), "--debug-svg", str(preview), "--save-config", str(saved)])

        assert preview.read_text().startswith("<svg")
        data = json.loads(saved.read_text())
        assert data["input_path"] == str(square_svg)
        assert data["output_path"] == str(out)

    def test_config_file(self, square_svg, tmp_path):
        out = tmp_path / "cfg.stl"
        cfg_path = tmp_path / "cfg.json"
        ConversionConfig(input_path=str(square_svg), output_path=str(out), solid_name="Cfg").save(cfg_path)

        main(["--config", str(cfg_path)])
        assert read_ascii_stl(out)[0] == "Cfg"

    def test_no_source(self):
        with pytest.raises(SystemExit, match="exactly one of"):
            main([])

    def test_missing_svg(self, tmp_path):
        with pytest.raises(SystemExit, match="SVG file not found"):
            main([str(tmp_path / "missing.svg")])

    def test_no_outlines(self, write_svg_file, tmp_path):
        svg = write_svg_file('<path d="M 0 0 L 1 1" fill="none"/>')
        with pytest.raises(SystemExit, match="No outlines"):
            main([str(svg), "--out", str(tmp_path / "x.stl")])

    def test_bad_config_value(self, square_svg):
        with pytest.raises(SystemExit, match="scale must be positive"):
            main([str(square_svg), "--scale", "0"])

    def test_unwritable_output(self, square_svg, tmp_path):
        with pytest.raises(SystemExit, match="Could not write STL"):
            main([str(square_svg), "--out", str(tmp_path)])

    def test_concave_outline_warns_with_fan(self, write_svg_file, tmp_path, caplog):
        svg = write_svg_file('<path d="M 2 0 L 2 1 L 1 1 L 1 2 L 0 2 L 0 0 Z"/>')
        with caplog.at_level(logging.WARNING, logger="svg_to_stl"):
            main([str(svg), "--out", str(tmp_path / "l.stl")])
        assert "1 of 1 outline(s) are concave" in caplog.text
        assert "--triangulation earcut" in caplog.text

    def test_concave_outline_quiet_with_earcut(self, write_svg_file, tmp_path, caplog):
        svg = write_svg_file('<path d="M 2 0 L 2 1 L 1 1 L 1 2 L 0 2 L 0 0 Z"/>')
        with caplog.at_level(logging.WARNING, logger="svg_to_stl"):
            main([str(svg), "--out", str(tmp_path / "l.stl"), "--triangulation", "earcut"])
        assert "concave" not in caplog.text
        assert "watertight" not in caplog.text

    def test_convex_outline_quiet(self, square_svg, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="svg_to_stl"):
            main([str(square_svg), "--out", str(tmp_path / "sq.stl")])
        assert "concave" not in caplog.text
        assert "watertight" not in caplog.text


class TestLoadOutlines:
    """Tests for outline options applying to both sources."""

    def test_text_flip_y(self):
        rings = load_outlines(ConversionConfig(text="I", flip_y=True))
        assert len(rings) == 1
        assert max(y for _, y in rings[0]) <= 1e-9

    def test_text_scale(self):
        plain = load_outlines(ConversionConfig(text="I"))
        scaled = load_outlines(ConversionConfig(text="I", scale=3.0))
        assert max(x for x, _ in scaled[0]) == pytest.approx(3 * max(x for x, _ in plain[0]))

    def test_text_simplify(self):
        detailed = load_outlines(ConversionConfig(text="O"))
        coarse = load_outlines(ConversionConfig(text="O", simplify=0.5))
        assert len(coarse[0]) < len(detailed[0])

    def test_svg_flip_y(self, square_svg):
        rings = load_outlines(ConversionConfig(input_path=str(square_svg), flip_y=True))
        assert min(y for _, y in rings[0]) == pytest.approx(-10.0)
