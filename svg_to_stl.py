#!/usr/bin/env python3
"""
svg_to_stl.py

Extrudes closed 2D outlines into a solid and writes it as an ASCII STL file.

Outlines come from an SVG drawing (curves flattened, strokes widened into
filled outlines) or from a line of text. Every outline is extruded to the same
thickness: a top cap, a bottom cap and side walls. The triangles of all
outlines are concatenated into one mesh and written with one unit normal per
facet.

Dependencies:
  pip install numpy shapely svgpathtools matplotlib trimesh mapbox_earcut
"""

from __future__ import annotations

import argparse
import io
import json
import logging
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import IO, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

import mapbox_earcut as earcut
import numpy as np
import trimesh
from matplotlib.font_manager import FontProperties
from matplotlib.textpath import TextPath
from shapely.affinity import scale as shp_scale
from shapely.geometry import CAP_STYLE, JOIN_STYLE, LineString, MultiPolygon, Polygon
from shapely.geometry.polygon import orient
from shapely.ops import unary_union
from svgpathtools import Line, svg2paths

logger = logging.getLogger(__name__)

MM_PER_PT = 25.4 / 72.0  # Matplotlib TextPath uses points

AREA_EPS = 1e-12  # relative to the squared bounding-box diagonal
NORMAL_EPS = 1e-8
GAP_EPS = 1e-6
MAX_CURVE_CHORDS = 256

TRIANGULATIONS = ("fan", "earcut")
WINDINGS = ("auto", "keep", "reverse")

Point2D = Tuple[float, float]
Sink = Union[str, Path, IO[str]]


class Point3D(NamedTuple):
    x: float
    y: float
    z: float


class Triangle(NamedTuple):
    a: Point3D
    b: Point3D
    c: Point3D


Mesh = List[Triangle]


class StlParseError(ValueError):
    pass


# ----------------------------
# Geometry helpers
# ----------------------------

def signed_area(points: Sequence[Point2D]) -> float:
    """
    Shoelace area of a closed ring.
    Positive = CCW, Negative = CW (in standard Y-up coordinates)
    """
    n = len(points)
    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += points[i][0] * points[j][1]
        area -= points[j][0] * points[i][1]
    return area / 2.0


def lift(p: Point2D, z: float) -> Point3D:
    return Point3D(float(p[0]), float(p[1]), float(z))


def _clean_ring(points: Iterable[Sequence[float]]) -> List[Point2D]:
    pts = [(float(p[0]), float(p[1])) for p in points]
    if len(pts) > 1 and pts[0] == pts[-1]:
        pts = pts[:-1]
    return pts


def _is_degenerate(points: Sequence[Sequence[float]], area: float) -> bool:
    """True when a ring encloses no area relative to its own size."""
    if len(points) < 3:
        return True
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    w = max(xs) - min(xs)
    h = max(ys) - min(ys)
    return abs(area) <= AREA_EPS * (w * w + h * h)


def is_convex(polygon: Sequence[Point2D]) -> bool:
    """
    Check that a ring has no reflex vertex, whichever way it is wound.
    Collinear points are allowed; fan caps are only correct for convex rings.
    """
    pts = _clean_ring(polygon)
    n = len(pts)
    if n < 4:
        return True
    sign = 1.0 if signed_area(pts) >= 0 else -1.0
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    w = max(xs) - min(xs)
    h = max(ys) - min(ys)
    tol = AREA_EPS * (w * w + h * h)
    for i in range(n):
        o, a, b = pts[i - 1], pts[i], pts[(i + 1) % n]
        turn = (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])
        if sign * turn < -tol:
            return False
    return True


def _fix_valid(geom):
    if geom.is_valid:
        return geom
    return geom.buffer(0)


def _as_polygons(geom) -> List[Polygon]:
    if geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, MultiPolygon):
        return list(geom.geoms)
    if hasattr(geom, "geoms"):
        return [g for g in geom.geoms if isinstance(g, Polygon)]
    return []


def _exterior_rings(geom) -> List[List[Point2D]]:
    rings = []
    for poly in _as_polygons(geom):
        if _is_degenerate(list(poly.exterior.coords), poly.area):
            continue
        if poly.interiors:
            logger.debug("Dropping %d interior ring(s); holes are filled", len(poly.interiors))
        poly = orient(Polygon(poly.exterior.coords), sign=1.0)
        rings.append(_clean_ring(poly.exterior.coords))
    return rings


# ----------------------------
# Triangulation + extrusion
# ----------------------------

def _fan_triangles(n: int) -> List[Tuple[int, int, int]]:
    return [(0, i, i + 1) for i in range(1, n - 1)]


def _earcut_triangles(pts: Sequence[Point2D]) -> List[Tuple[int, int, int]]:
    coords = np.asarray(pts, dtype=np.float64)
    ring_ends = np.asarray([len(pts)], dtype=np.uint32)
    tri = np.asarray(earcut.triangulate_float64(coords, ring_ends), dtype=np.int64).reshape(-1, 3)

    out = []
    for ia, ib, ic in tri.tolist():
        a, b, c = pts[ia], pts[ib], pts[ic]
        # earcut does not promise an orientation; caps need CCW
        if (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0]) < 0:
            ib, ic = ic, ib
        out.append((ia, ib, ic))
    return out


def cap_triangles(pts: Sequence[Point2D], triangulation: str = "fan") -> List[Tuple[int, int, int]]:
    """Index triples covering a CCW ring, each wound CCW."""
    if triangulation == "fan":
        return _fan_triangles(len(pts))
    if triangulation == "earcut":
        return _earcut_triangles(pts)
    raise ValueError(f"Unknown triangulation {triangulation!r}, expected one of {TRIANGULATIONS}")


def extrude(polygon: Sequence[Point2D], thickness: float = 1.0,
            triangulation: str = "fan", winding: str = "auto") -> Mesh:
    """
    Extrude one closed outline between z=0 and z=thickness.

    Triangles are returned as top cap, bottom cap, then side walls. A ring
    with fewer than 3 points or no enclosed area gives an empty list.

    winding:
      - "auto": clockwise rings are reversed so normals point outward
      - "keep": the ring is trusted to be counter-clockwise
      - "reverse": the ring is reversed before use
    """
    if winding not in WINDINGS:
        raise ValueError(f"Unknown winding {winding!r}, expected one of {WINDINGS}")

    pts = _clean_ring(polygon)
    if len(pts) < 3:
        return []
    area = signed_area(pts)
    if _is_degenerate(pts, area):
        return []
    if winding == "reverse" or (winding == "auto" and area < 0):
        pts = pts[::-1]

    caps = cap_triangles(pts, triangulation)
    n = len(pts)
    bottom = [lift(p, 0.0) for p in pts]
    top = [lift(p, thickness) for p in pts]

    tris: Mesh = []
    for i, j, k in caps:
        tris.append(Triangle(top[i], top[j], top[k]))
    for i, j, k in caps:
        tris.append(Triangle(bottom[i], bottom[k], bottom[j]))
    for i in range(n):
        j = (i + 1) % n
        tris.append(Triangle(bottom[i], bottom[j], top[i]))
        tris.append(Triangle(top[i], bottom[j], top[j]))
    return tris


def build_mesh(polygons: Iterable[Sequence[Point2D]], thickness: float = 1.0,
               triangulation: str = "fan", winding: str = "auto") -> Mesh:
    mesh: Mesh = []
    for poly in polygons:
        mesh.extend(extrude(poly, thickness, triangulation=triangulation, winding=winding))
    return mesh


def mesh_to_array(mesh: Mesh) -> np.ndarray:
    if not mesh:
        return np.zeros((0, 3, 3), dtype=np.float64)
    return np.asarray(mesh, dtype=np.float64).reshape(-1, 3, 3)


def to_trimesh(mesh: Mesh) -> trimesh.Trimesh:
    """Shared vertices are merged, so watertightness can be checked."""
    vertices = mesh_to_array(mesh).reshape(-1, 3)
    faces = np.arange(len(vertices), dtype=np.int64).reshape(-1, 3)
    return trimesh.Trimesh(vertices=vertices, faces=faces, process=True)


# ----------------------------
# STL writer / reader
# ----------------------------

def facet_normal(tri: Triangle) -> Point3D:
    a, b, c = tri
    ux, uy, uz = b.x - a.x, b.y - a.y, b.z - a.z
    vx, vy, vz = c.x - a.x, c.y - a.y, c.z - a.z
    nx = uy * vz - uz * vy
    ny = uz * vx - ux * vz
    nz = ux * vy - uy * vx
    length = math.sqrt(nx * nx + ny * ny + nz * nz)
    if length <= NORMAL_EPS:
        return Point3D(0.0, 0.0, 0.0)
    return Point3D(nx / length, ny / length, nz / length)


def _fmt(v: float) -> str:
    # repr is the shortest text that parses back to the same float
    return repr(float(v))


def _facet_lines(tri: Triangle) -> List[str]:
    n = facet_normal(tri)
    lines = [f"  facet normal {_fmt(n.x)} {_fmt(n.y)} {_fmt(n.z)}", "    outer loop"]
    for v in tri:
        lines.append(f"      vertex {_fmt(v.x)} {_fmt(v.y)} {_fmt(v.z)}")
    lines.append("    endloop")
    lines.append("  endfacet")
    return lines


def _write_stl(mesh: Mesh, out: IO[str], name: str) -> None:
    out.write(f"solid {name}\n")
    for tri in mesh:
        out.write("\n".join(_facet_lines(tri)))
        out.write("\n")
    out.write(f"endsolid {name}\n")


def _check_name(name: str) -> None:
    if not name.isascii() or "\n" in name or "\r" in name:
        raise ValueError(f"STL solid name must be single-line ASCII, got {name!r}")


def write_ascii_stl(mesh: Mesh, destination: Sink, name: str = "MyObject") -> None:
    """
    Write `mesh` as ASCII STL to a path or an open text stream.

    Streams are left open. A name that is not single-line ASCII raises
    ValueError before anything is opened. Errors from opening or writing a
    path propagate as OSError and may leave a truncated file behind.
    """
    _check_name(name)
    if isinstance(destination, (str, Path)):
        with open(destination, "w", encoding="ascii", newline="\n") as f:
            _write_stl(mesh, f, name)
    else:
        _write_stl(mesh, destination, name)


def format_ascii_stl(mesh: Mesh, name: str = "MyObject") -> str:
    _check_name(name)
    buf = io.StringIO()
    _write_stl(mesh, buf, name)
    return buf.getvalue()


def _parse_floats(lineno: int, tokens: Sequence[str]) -> Tuple[float, float, float]:
    if len(tokens) != 3:
        raise StlParseError(f"line {lineno}: expected 3 numbers, got {len(tokens)}")
    try:
        return float(tokens[0]), float(tokens[1]), float(tokens[2])
    except ValueError as e:
        raise StlParseError(f"line {lineno}: {e}") from e


def read_ascii_stl(source: Sink) -> Tuple[str, Mesh]:
    """
    Parse ASCII STL text into (solid name, triangles).

    Stored normals are checked for syntax only; use facet_normal() to get
    them back.
    """
    if isinstance(source, (str, Path)):
        text = Path(source).read_text(encoding="ascii")
    else:
        text = source.read()

    lines = [(i + 1, ln.split()) for i, ln in enumerate(text.splitlines()) if ln.strip()]
    if not lines or lines[0][1][0] != "solid":
        raise StlParseError("line 1: expected 'solid'")
    name = " ".join(lines[0][1][1:])

    tris: Mesh = []
    pos = 1

    def expect(*keywords: str) -> Tuple[int, List[str]]:
        nonlocal pos
        if pos >= len(lines):
            raise StlParseError(f"unexpected end of file, expected {' '.join(keywords)!r}")
        lineno, tokens = lines[pos]
        if tuple(tokens[:len(keywords)]) != keywords:
            raise StlParseError(f"line {lineno}: expected {' '.join(keywords)!r}, got {' '.join(tokens)!r}")
        pos += 1
        return lineno, tokens[len(keywords):]

    while pos < len(lines) and lines[pos][1][0] == "facet":
        _parse_floats(*expect("facet", "normal"))
        expect("outer", "loop")
        verts = [Point3D(*_parse_floats(*expect("vertex"))) for _ in range(3)]
        expect("endloop")
        expect("endfacet")
        tris.append(Triangle(*verts))

    lineno, trailer = expect("endsolid")
    if " ".join(trailer) != name:
        raise StlParseError(f"line {lineno}: endsolid name {' '.join(trailer)!r} does not match {name!r}")
    if pos != len(lines):
        raise StlParseError(f"line {lines[pos][0]}: content after endsolid")
    return name, tris


# ----------------------------
# SVG to 2D outlines
# ----------------------------

def _style_attributes(attr: dict) -> dict:
    """Presentation attributes merged with the inline style (style wins)."""
    out = {k: v for k, v in attr.items() if k in ("fill", "stroke", "stroke-width")}
    for decl in attr.get("style", "").split(";"):
        if ":" not in decl:
            continue
        key, value = decl.split(":", 1)
        key = key.strip()
        if key in ("fill", "stroke", "stroke-width"):
            out[key] = value.strip()
    return out


def _is_painted(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() not in ("none", "transparent", "")


def _parse_length(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    v = value.strip().lower()
    for unit in ("px", "pt", "mm"):
        if v.endswith(unit):
            v = v[: -len(unit)]
            break
    try:
        return float(v)
    except ValueError:
        return default


def _split_subpaths(path) -> List[list]:
    subpaths: List[list] = []
    current: list = []
    for seg in path:
        if current and abs(seg.start - current[-1].end) > GAP_EPS:
            subpaths.append(current)
            current = []
        current.append(seg)
    if current:
        subpaths.append(current)
    return subpaths


def _flatten_subpath(segments, segment_length: float) -> List[Point2D]:
    points: List[Point2D] = []
    for seg in segments:
        if isinstance(seg, Line):
            chords = 1
        else:
            length = seg.length()
            chords = min(MAX_CURVE_CHORDS, max(2, int(math.ceil(length / segment_length))))
        for i in range(chords):
            z = seg.point(i / chords)
            points.append((float(z.real), float(z.imag)))
    end = segments[-1].end
    points.append((float(end.real), float(end.imag)))

    deduped: List[Point2D] = []
    for p in points:
        if not all(math.isfinite(c) for c in p):
            continue
        if deduped and math.hypot(p[0] - deduped[-1][0], p[1] - deduped[-1][1]) < GAP_EPS:
            continue
        deduped.append(p)
    return deduped


def _subpath_shapes(points: List[Point2D], filled: bool, pen: float) -> list:
    closed = len(points) > 2 and math.hypot(points[0][0] - points[-1][0], points[0][1] - points[-1][1]) < GAP_EPS
    shapes = []
    if filled and len(points) >= 3:
        shapes.append(_fix_valid(Polygon(points)))
    if pen > 0 and len(points) >= 2:
        if closed:
            line = Polygon(points).exterior
        else:
            line = LineString(points)
        shapes.append(line.buffer(pen / 2.0, cap_style=CAP_STYLE.flat, join_style=JOIN_STYLE.mitre))
    return [s for s in shapes if not s.is_empty]


def _transform_outlines(geom, scale: float = 1.0, flip_y: bool = False, simplify: float = 0.0):
    if scale != 1.0 or flip_y:
        geom = shp_scale(geom, xfact=scale, yfact=-scale if flip_y else scale, origin=(0, 0))
    if simplify > 0:
        geom = _fix_valid(geom.simplify(simplify, preserve_topology=True))
    return geom


def svg_outlines(svg_path: Union[str, Path], stroke_width: float = 0.0, segment_length: float = 1.0,
                 scale: float = 1.0, flip_y: bool = False, simplify: float = 0.0) -> List[List[Point2D]]:
    """
    Read an SVG document and return its painted area as closed CCW outlines.

    With stroke_width > 0 every path is widened with that pen, ignoring its
    own fill and stroke. Otherwise fill and stroke come from the document.
    Group transforms are not applied.
    """
    svg_path = Path(svg_path)
    if not svg_path.exists():
        raise FileNotFoundError(f"SVG file not found: {svg_path}")

    paths, attributes = svg2paths(str(svg_path))
    rings: List[List[Point2D]] = []
    skipped = 0

    for idx, (path, attr) in enumerate(zip(paths, attributes)):
        style = _style_attributes(attr)
        if stroke_width > 0:
            filled, pen = False, stroke_width
        else:
            filled = _is_painted(style.get("fill", "black"))
            pen = _parse_length(style.get("stroke-width"), 1.0) if _is_painted(style.get("stroke")) else 0.0

        shapes = []
        for segments in _split_subpaths(path):
            points = _flatten_subpath(segments, segment_length)
            shapes.extend(_subpath_shapes(points, filled, pen))
        if not shapes:
            skipped += 1
            logger.debug("Path %s produced no outline", attr.get("id", idx))
            continue

        geom = shapes[0] if len(shapes) == 1 else _fix_valid(unary_union(shapes))
        geom = _transform_outlines(geom, scale, flip_y, simplify)
        rings.extend(_exterior_rings(geom))

    if skipped:
        logger.warning("Skipped %d of %d SVG paths with no fill or stroke", skipped, len(paths))
    logger.debug("Read %d outline(s) from %s", len(rings), svg_path)
    return rings


# ----------------------------
# Text to 2D outlines
# ----------------------------

def text_outlines(text: str, font_path: Optional[str] = None, font_size: float = 10.0,
                  line_spacing: float = 1.15, scale: float = 1.0, flip_y: bool = False,
                  simplify: float = 0.0) -> List[List[Point2D]]:
    """Glyph outlines of `text`, font_size in mm; counters are filled."""
    if not text.strip():
        return []
    fp = FontProperties(fname=font_path) if font_path else FontProperties()
    size_pt = font_size / MM_PER_PT

    loops = []
    for row, line in enumerate(text.splitlines()):
        if not line.strip():
            continue
        tp = TextPath((0, -row * size_pt * line_spacing), line, size=size_pt, prop=fp, usetex=False)
        for arr in tp.to_polygons():
            coords = _clean_ring(arr)
            if len(coords) < 3:
                continue
            p = _fix_valid(Polygon(coords))
            if not _is_degenerate(coords, p.area):
                loops.append(p)

    if not loops:
        return []
    geom = shp_scale(unary_union(loops), xfact=MM_PER_PT, yfact=MM_PER_PT, origin=(0, 0))
    geom = _transform_outlines(_fix_valid(geom), scale, flip_y, simplify)
    return _exterior_rings(geom)


# ----------------------------
# SVG preview
# ----------------------------

def write_svg(polygons: Sequence[Sequence[Point2D]], path: Union[str, Path]) -> None:
    rings = [_clean_ring(p) for p in polygons if len(p) >= 3]
    if not rings:
        Path(path).write_text("<svg xmlns='http://www.w3.org/2000/svg'></svg>", encoding="utf-8")
        return
    xs = [x for r in rings for x, _ in r]
    ys = [y for r in rings for _, y in r]
    minx, maxx, miny, maxy = min(xs), max(xs), min(ys), max(ys)
    w = maxx - minx
    h = maxy - miny

    def ring_to_path(coords):
        d = f"M {coords[0][0]-minx:.3f} {maxy-coords[0][1]:.3f} "
        for x, y in coords[1:]:
            d += f"L {x-minx:.3f} {maxy-y:.3f} "
        d += "Z "
        return d

    paths = " ".join(ring_to_path(r) for r in rings)
    svg = f"""<svg xmlns="http://www.w3.org/2000/svg" width="{w:.3f}mm" height="{h:.3f}mm" viewBox="0 0 {w:.3f} {h:.3f}">
  <path d="{paths}" fill="black" fill-rule="nonzero" />
</svg>
"""
    Path(path).write_text(svg, encoding="utf-8")


# ----------------------------
# Configuration
# ----------------------------

@dataclass
class ConversionConfig:
    """
    Options for one conversion run.

    Attributes:
        input_path: SVG document to read (exclusive with text)
        text: Text to outline instead of an SVG
        font_path: Font file for text (None = matplotlib default)
        font_size: Text height in drawing units (mm)
        output_path: STL file to write
        solid_name: Name in the STL solid/endsolid lines
        thickness: Extrusion height
        stroke_width: Widen every path with this pen (0 = use SVG fill/stroke)
        segment_length: Maximum chord length when flattening curves
        scale: Uniform scale applied to outlines before extrusion
        flip_y: Mirror y, since SVG y points down
        simplify: Outline simplification tolerance (0 = off)
        triangulation: Cap triangulation, "fan" or "earcut"
        winding: Ring orientation handling, "auto", "keep" or "reverse"
    """
    input_path: Optional[str] = None
    text: Optional[str] = None
    font_path: Optional[str] = None
    font_size: float = 10.0

    output_path: str = "out.stl"
    solid_name: str = "MyObject"

    thickness: float = 1.0
    stroke_width: float = 0.0
    segment_length: float = 1.0
    scale: float = 1.0
    flip_y: bool = False
    simplify: float = 0.0

    triangulation: str = "fan"
    winding: str = "auto"

    def validate(self) -> list[str]:
        """
        Validate configuration values.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if bool(self.input_path) == bool(self.text):
            errors.append("exactly one of input_path or text must be set")

        if not math.isfinite(self.thickness):
            errors.append(f"thickness must be finite, got {self.thickness}")
        if self.segment_length <= 0:
            errors.append(f"segment_length must be positive, got {self.segment_length}")
        if self.scale <= 0:
            errors.append(f"scale must be positive, got {self.scale}")
        if self.stroke_width < 0:
            errors.append(f"stroke_width cannot be negative, got {self.stroke_width}")
        if self.simplify < 0:
            errors.append(f"simplify cannot be negative, got {self.simplify}")
        if self.font_size <= 0:
            errors.append(f"font_size must be positive, got {self.font_size}")

        if self.triangulation not in TRIANGULATIONS:
            errors.append(f"triangulation must be one of {TRIANGULATIONS}, got {self.triangulation!r}")
        if self.winding not in WINDINGS:
            errors.append(f"winding must be one of {WINDINGS}, got {self.winding!r}")

        if not self.solid_name or not self.solid_name.isascii() or any(ch.isspace() for ch in self.solid_name):
            errors.append(f"solid_name must be a non-empty ASCII word, got {self.solid_name!r}")

        return errors

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict) -> "ConversionConfig":
        """Create from dictionary; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def save(self, filepath: Path | str) -> None:
        with open(Path(filepath), "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: Path | str) -> "ConversionConfig":
        """Load from JSON; a missing file gives the defaults."""
        filepath = Path(filepath)
        if not filepath.exists():
            return cls()
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config file {filepath} must hold a JSON object.")
        return cls.from_dict(data)


def load_outlines(cfg: ConversionConfig) -> List[List[Point2D]]:
    if cfg.text:
        return text_outlines(cfg.text, cfg.font_path, cfg.font_size,
                             scale=cfg.scale, flip_y=cfg.flip_y, simplify=cfg.simplify)
    return svg_outlines(
        cfg.input_path,
        stroke_width=cfg.stroke_width,
        segment_length=cfg.segment_length,
        scale=cfg.scale,
        flip_y=cfg.flip_y,
        simplify=cfg.simplify,
    )


# ----------------------------
# CLI
# ----------------------------

def parse_args(argv: Optional[Sequence[str]] = None):
    p = argparse.ArgumentParser(description="Extrude SVG outlines or text into an ASCII STL solid.")
    p.add_argument("input", nargs="?", default=None, help="SVG file to extrude.")
    p.add_argument("--text", type=str, default=None, help="Extrude this text instead of an SVG.")
    p.add_argument("--config", type=str, default=None, help="JSON config file; command line options override it.")

    p.add_argument("--font", dest="font_path", type=str, default=None, help="Path to TTF/OTF font file for --text.")
    p.add_argument("--font-size", type=float, default=None, help="Text height in mm.")

    p.add_argument("--thickness", type=float, default=None, help="Extrusion thickness (default 1).")
    p.add_argument("--stroke-width", type=float, default=None,
                   help="Widen every path with this pen width, ignoring SVG fill/stroke.")
    p.add_argument("--segment-length", type=float, default=None, help="Max chord length when flattening curves.")
    p.add_argument("--scale", type=float, default=None, help="Uniform scale applied to outlines.")
    p.add_argument("--flip-y", action="store_true", default=None, help="Mirror y (SVG y axis points down).")
    p.add_argument("--simplify", type=float, default=None, help="Outline simplification tolerance.")
    p.add_argument("--triangulation", type=str, default=None, choices=TRIANGULATIONS,
                   help="Cap triangulation: 'fan' (convex only) or 'earcut' (concave safe).")
    p.add_argument("--winding", type=str, default=None, choices=WINDINGS,
                   help="Outline orientation: detect ('auto'), trust ('keep') or 'reverse'.")

    p.add_argument("--out", dest="output_path", type=str, default=None, help="Output STL path.")
    p.add_argument("--name", dest="solid_name", type=str, default=None, help="STL solid name.")
    p.add_argument("--debug-svg", type=str, default=None, help="Write SVG of the extracted outlines.")
    p.add_argument("--save-config", type=str, default=None, help="Write the effective config to this JSON file.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return p.parse_args(argv)


def config_from_args(args) -> ConversionConfig:
    cfg = ConversionConfig.load(args.config) if args.config else ConversionConfig()
    overrides = {"input_path": args.input}
    for f in fields(ConversionConfig):
        if f.name != "input_path" and hasattr(args, f.name):
            overrides[f.name] = getattr(args, f.name)
    data = cfg.to_dict()
    data.update({k: v for k, v in overrides.items() if v is not None})
    if args.input and not args.text:
        data["text"] = None
    elif args.text and not args.input:
        data["input_path"] = None
    return ConversionConfig.from_dict(data)


def main(argv: Optional[Sequence[str]] = None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s: %(message)s")

    try:
        cfg = config_from_args(args)
        errors = cfg.validate()
    except (OSError, ValueError, TypeError) as e:
        raise SystemExit(f"Could not load config: {e}")

    if errors:
        raise SystemExit("Invalid configuration:\n  " + "\n  ".join(errors))
    if cfg.input_path and not Path(cfg.input_path).exists():
        raise SystemExit(f"SVG file not found: {cfg.input_path}")
    if cfg.font_path and not Path(cfg.font_path).exists():
        raise SystemExit(f"Font file not found: {cfg.font_path}")

    if args.save_config:
        cfg.save(args.save_config)
        print(f"Wrote config: {args.save_config}")

    # 1) Outlines
    rings = load_outlines(cfg)
    if not rings:
        raise SystemExit("No outlines found. Check the SVG fill/stroke or use --stroke-width.")
    print(f"Outlines: {len(rings)}")

    if args.debug_svg:
        write_svg(rings, args.debug_svg)
        print(f"Wrote outline SVG: {args.debug_svg}")

    # 2) Extrude
    mesh = build_mesh(rings, cfg.thickness, triangulation=cfg.triangulation, winding=cfg.winding)
    if not mesh:
        raise SystemExit("Mesh generation failed (empty mesh).")

    if cfg.triangulation == "fan":
        concave = sum(1 for r in rings if not is_convex(r))
        if concave:
            logger.warning("%d of %d outline(s) are concave; fan caps will overlap, "
                           "use --triangulation earcut", concave, len(rings))

    # 3) Write
    out_path = Path(cfg.output_path)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        write_ascii_stl(mesh, out_path, cfg.solid_name)
    except OSError as e:
        raise SystemExit(f"Could not write STL {out_path} (file may be incomplete): {e}")

    solid = to_trimesh(mesh)
    if not solid.is_watertight:
        logger.warning("Mesh is not watertight after merging vertices; check for degenerate outlines")

    print(f"Wrote STL: {out_path.resolve()}")
    print(f"Triangles: {len(mesh)}")
    print(f"Extents: {solid.extents}")


if __name__ == "__main__":
    main()
