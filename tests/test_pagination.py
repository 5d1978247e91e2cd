"""
Tests para core/pagination.py.
"""

from mestable.core.pagination import (
    clamp_page,
    last_page,
    page_bounds,
    page_of,
    total_pages,
    visible_slice,
)


class TestPagination:
    """Tests para funciones de paginación."""

    def test_total_pages(self):
        """12 filas con 5 por página son 3 páginas."""
        assert total_pages(12, 5) == 3
        assert total_pages(10, 5) == 2
        assert total_pages(0, 5) == 0

    def test_disabled(self):
        """Sin tamaño de página: una sola página con todo."""
        assert total_pages(12, None) == 1
        assert visible_slice(list(range(12)), 0, None) == list(range(12))

    def test_last_page_slice(self):
        """La última página contiene el resto."""
        rows = list(range(12))
        assert visible_slice(rows, 2, 5) == [10, 11]
        assert visible_slice(rows, 0, 5) == [0, 1, 2, 3, 4]

    def test_clamp(self):
        """El cursor se limita al rango válido."""
        assert clamp_page(7, 12, 5) == 2
        assert clamp_page(-1, 12, 5) == 0
        assert clamp_page(3, 0, 5) == 0
        assert last_page(0, 5) == 0

    def test_page_of(self):
        """Página que contiene una fila."""
        assert page_of(0, 5) == 0
        assert page_of(5, 5) == 1
        assert page_of(11, 5) == 2
        assert page_of(11, None) == 0

    def test_bounds_past_end(self):
        """Una página fuera de rango no tiene filas."""
        assert page_bounds(4, 12, 5) == (12, 12)
