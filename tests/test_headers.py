"""
Tests para core/headers.py - encabezados agrupados.
"""

from mestable.config import Column, HeaderNode
from mestable.core.headers import build_header_rows, leaf_order, synthesize_header


def _nodes(raw):
    return [HeaderNode.model_validate(n) for n in raw]


def _cols(*ids):
    return [Column(field_id=fid, field_name=fid.upper()) for fid in ids]


class TestBuildHeaderRows:
    """Tests para build_header_rows."""

    def test_two_level_group(self, grouped_header):
        """Group con hijos X e Y: dos filas de encabezado."""
        rows = build_header_rows(_nodes(grouped_header))
        assert len(rows) == 2
        group = rows[0][0]
        assert group.label == "Group"
        assert group.col_span == 2
        assert group.row_span == 1
        assert not group.is_leaf
        assert [(c.label, c.col_span, c.row_span) for c in rows[1]] == [("X", 1, 1), ("Y", 1, 1)]

    def test_shallow_leaf_spans_remaining_depth(self, grouped_header):
        """Una hoja de nivel superior ocupa todas las filas restantes."""
        tree = grouped_header + [{"label": "Z", "columns": ["z"]}]
        rows = build_header_rows(_nodes(tree))
        z = rows[0][1]
        assert z.label == "Z"
        assert z.row_span == 2
        assert z.is_leaf

    def test_leaf_with_several_columns(self):
        """Una hoja con varias columnas abarca todas ellas."""
        rows = build_header_rows(_nodes([{"label": "Par", "columns": ["a", "b"]}]))
        assert rows[0][0].col_span == 2
        assert rows[0][0].field_ids == ("a", "b")

    def test_three_levels(self):
        """Profundidad tres: row_span de hojas según su nivel."""
        tree = [
            {"label": "A", "children": [
                {"label": "B", "children": [{"label": "c", "columns": ["c"]}]},
                {"label": "d", "columns": ["d"]},
            ]},
        ]
        rows = build_header_rows(_nodes(tree))
        assert len(rows) == 3
        assert rows[0][0].col_span == 2
        d = next(c for c in rows[1] if c.label == "d")
        assert d.row_span == 2
        assert rows[2][0].row_span == 1

    def test_synthesized_without_structure(self):
        """Sin árbol: un nivel con una celda por columna."""
        rows = build_header_rows(None, _cols("a", "b"))
        assert len(rows) == 1
        assert [c.label for c in rows[0]] == ["A", "B"]
        assert all(c.col_span == 1 and c.row_span == 1 for c in rows[0])

    def test_empty(self):
        """Sin árbol ni columnas no hay encabezado."""
        assert build_header_rows(None, []) == []


class TestHeaderSync:
    """Tests para la sincronización con las columnas actuales."""

    def test_unknown_ids_are_pruned(self, grouped_header):
        """Las hojas sin columna se descartan y los grupos vacíos también."""
        rows = build_header_rows(_nodes(grouped_header), _cols("x"))
        assert rows[0][0].label == "Group"
        assert rows[0][0].col_span == 1
        assert [c.label for c in rows[1]] == ["X"]

        rows = build_header_rows(_nodes(grouped_header), _cols("w"))
        assert len(rows) == 1
        assert [c.label for c in rows[0]] == ["W"]

    def test_unreferenced_columns_appended(self, grouped_header):
        """Las columnas fuera del árbol se agregan al final."""
        rows = build_header_rows(_nodes(grouped_header), _cols("x", "y", "extra"))
        extra = rows[0][-1]
        assert extra.label == "EXTRA"
        assert extra.row_span == 2

    def test_duplicate_reference_kept_once(self):
        """Un field id referenciado dos veces aparece una sola vez."""
        tree = [{"label": "A", "columns": ["a"]}, {"label": "Otra A", "columns": ["a"]}]
        rows = build_header_rows(_nodes(tree), _cols("a"))
        assert [c.label for c in rows[0]] == ["A"]

    def test_all_columns_removed(self, grouped_header):
        """Sin columnas el árbol no conserva hojas inexistentes."""
        assert build_header_rows(_nodes(grouped_header), []) == []


class TestLeafOrder:
    """Tests para leaf_order."""

    def test_order_follows_tree(self, grouped_header):
        """El orden de hojas sigue el árbol de izquierda a derecha."""
        rows = build_header_rows(_nodes(grouped_header), _cols("y", "z", "x"))
        assert leaf_order(rows) == ["x", "y", "z"]

    def test_synthesize_header(self):
        """synthesize_header usa field_name como etiqueta."""
        nodes = synthesize_header(_cols("a"))
        assert nodes[0].label == "A"
        assert nodes[0].columns == ["a"]
