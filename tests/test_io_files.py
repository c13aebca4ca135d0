import os
import tempfile
import unittest

from canvas import Canvas
from config import CFG
from io_files import write_layout_view_html, write_leaves
from models import CalculationResult, Chip, Placement, Position, Rotation
from shapes import ShapeRegistry


class WriteOutputsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self._orig_leaves = CFG.LEAVES_OUT
        self._orig_layout = CFG.LAYOUT_HTML

    def tearDown(self) -> None:
        CFG.LEAVES_OUT = self._orig_leaves
        CFG.LAYOUT_HTML = self._orig_layout

    def test_write_leaves_uses_configured_relative_path(self) -> None:
        CFG.LEAVES_OUT = "outputs/custom_leaves.txt"
        chips = [Chip("2", Rotation.CW0, 4)]
        leaf = CalculationResult((Placement(0, Position(1, 0), Rotation.CW90),), 4)
        canvas = Canvas.from_strings(["#..", "..."])

        path = write_leaves([leaf], canvas, chips, ShapeRegistry.default(), self.tmpdir.name)

        expected = os.path.join(self.tmpdir.name, "outputs", "custom_leaves.txt")
        self.assertEqual(path, expected)
        with open(path, "r", encoding="utf-8") as fh:
            contents = fh.read()
        self.assertIn("correction cost 4", contents)
        self.assertIn("2#0 @ (1,0) rotated 90°", contents)
        self.assertIn("#aa", contents)

    def test_write_leaves_without_leaves(self) -> None:
        CFG.LEAVES_OUT = "empty.txt"
        path = write_leaves([], Canvas.empty(2, 2), [], ShapeRegistry.default(), self.tmpdir.name)
        with open(path, "r", encoding="utf-8") as fh:
            self.assertEqual(fh.read(), "No leaves\n")

    def test_write_layout_view_html_accepts_absolute_path(self) -> None:
        target = os.path.join(self.tmpdir.name, "html", "layout.html")
        CFG.LAYOUT_HTML = target

        svg = "<svg></svg>"
        legend = "<li>4T</li>"

        path = write_layout_view_html(svg, legend, self.tmpdir.name)

        self.assertEqual(path, target)
        with open(path, "r", encoding="utf-8") as fh:
            contents = fh.read()
        self.assertIn(svg, contents)
        self.assertIn(legend, contents)


if __name__ == "__main__":
    unittest.main()
