from canvas import Canvas
from matrix import Matrix
from models import CalculationResult, Chip, Placement, Position, Rotation
from render import leaf_cells, render_leaf, render_text
from shapes import ShapeRegistry


CHIPS = [Chip("3L"), Chip("1")]
LEAF = CalculationResult((
    Placement(0, Position(0, 1), Rotation.CW0),
    Placement(1, Position(2, 0), Rotation.CW0),
))


def test_leaf_cells_follow_rotation():
    registry = ShapeRegistry.default()
    cells = dict(leaf_cells(LEAF, CHIPS, registry))
    assert len(cells[0]) == 3
    assert cells[1] == [(2, 0)]
    turned = CalculationResult((Placement(0, Position(0, 0), Rotation.CW90),))
    rotated = dict(leaf_cells(turned, CHIPS, registry))[0]
    assert sorted(rotated) != sorted(cells[0])


def test_render_text_marks_each_chip():
    canvas = Canvas.from_strings(["#..", "...", "..."])
    rows = render_text(canvas, LEAF, CHIPS, ShapeRegistry.default())
    text = "".join(rows)
    assert rows[0][0] == "#"
    assert rows[0][2] == "b"
    assert text.count("a") == 3
    assert text.count(".") == 9 - 1 - 3 - 1


def test_render_leaf_svg_and_legend():
    svg, legend = render_leaf(Canvas.empty(3, 3), LEAF, CHIPS, ShapeRegistry.default())
    assert svg.startswith("<svg")
    assert svg.count("<text") == 2
    assert "3L" in legend and "1" in legend


def test_render_leaf_escapes_shape_ids():
    registry = ShapeRegistry.default()
    registry.register("<b>&bar", Matrix.from_strings(["##"]))
    chips = [Chip("<b>&bar")]
    leaf = CalculationResult((Placement(0, Position(0, 0), Rotation.CW0),))
    svg, legend = render_leaf(Canvas.empty(2, 1), leaf, chips, registry)
    assert "<b>" not in svg and "<b>" not in legend
    assert "&lt;b&gt;&amp;bar#0" in svg
    assert "&lt;b&gt;&amp;bar</li>" in legend
