"""
Tests para config.py - interpretación tolerante del esquema.
"""

import json

import pytest

from mestable.config import (
    Column,
    EngineSettings,
    RowMode,
    TableConfig,
    TableSchema,
    get_settings,
    load_settings,
    reset_settings,
)


class TestColumn:
    """Tests para el modelo Column."""

    def test_field_name_defaults_to_id(self):
        """Sin field_name se usa el field_id como etiqueta."""
        col = Column(field_id="batch")
        assert col.field_name == "batch"
        assert col.field_type == "text"

    def test_unknown_type_is_kept(self):
        """Los tags desconocidos se conservan como texto."""
        col = Column(field_id="x", field_type="hologram")
        assert col.field_type == "hologram"

    def test_has_default(self):
        """has_default distingue ausencia de default_value null."""
        assert not Column(field_id="a").has_default
        assert Column(field_id="a", default_value=None).has_default
        assert Column(field_id="a", default_value=0).has_default

    def test_invalid_validation_is_dropped(self):
        """Una sección validation mal formada se ignora."""
        col = Column.model_validate({"field_id": "a", "validation": "mucho"})
        assert col.validation is None

    def test_role_string_becomes_list(self):
        """signed_by_role acepta un texto único."""
        col = Column.model_validate({"field_id": "a", "signed_by_role": "QA"})
        assert col.signed_by_role == ["QA"]

    def test_options_without_value_are_skipped(self):
        """Las opciones sin 'value' se descartan."""
        col = Column.model_validate({
            "field_id": "a",
            "field_type": "enum",
            "options": [{"label": "Uno", "value": "1"}, {"label": "Roto"}, "x"],
        })
        assert [o.value for o in col.options] == ["1"]

    def test_option_label_defaults_to_value(self):
        """Una opción sin etiqueta muestra su valor."""
        col = Column.model_validate({"field_id": "a", "options": [{"value": "z"}]})
        assert col.options[0].label == "z"


class TestTableConfig:
    """Tests para TableConfig."""

    def test_columns_without_id_are_dropped(self):
        """Columnas sin field_id se descartan."""
        config = TableConfig.model_validate({
            "columns": [{"field_name": "Sin id"}, {"field_id": "ok"}],
        })
        assert [c.field_id for c in config.columns] == ["ok"]

    def test_duplicate_ids_keep_first(self):
        """field_id duplicado: se conserva la primera columna."""
        config = TableConfig.model_validate({
            "columns": [
                {"field_id": "a", "field_name": "Primera"},
                {"field_id": "a", "field_name": "Segunda"},
            ],
        })
        assert len(config.columns) == 1
        assert config.columns[0].field_name == "Primera"

    def test_invalid_attributes_fall_back(self):
        """Un atributo inválido vuelve a su valor por defecto y la columna se conserva."""
        config = TableConfig.model_validate({
            "columns": [
                {"field_id": "a", "field_type": "number", "precision": 20},
                {"field_id": "b", "field_type": "number", "validation": {"min": "low", "max": 5}},
                {"field_id": "c", "field_type": "file", "max_size_mb": 0},
                {"field_id": "d", "field_type": "number", "precision": -1, "unit": "kg"},
            ],
        })
        cols = {c.field_id: c for c in config.columns}
        assert list(cols) == ["a", "b", "c", "d"]
        assert cols["a"].precision is None
        assert cols["a"].field_type == "number"
        assert cols["b"].validation.min is None
        assert cols["b"].validation.max == 5
        assert cols["c"].max_size_mb is None
        assert cols["d"].precision is None
        assert cols["d"].unit == "kg"

    def test_invalid_id_still_drops_column(self):
        """Un field_id inválido descarta la columna aunque el resto sea válido."""
        config = TableConfig.model_validate({
            "columns": [{"field_id": "", "precision": 20}, {"field_id": 5}, {"field_id": "ok"}],
        })
        assert [c.field_id for c in config.columns] == ["ok"]

    def test_malformed_sections_fall_back(self):
        """Secciones opcionales mal formadas usan valores por defecto."""
        config = TableConfig.model_validate({
            "columns": [{"field_id": "a"}],
            "row_controls": {"initial_rows": "muchas"},
            "pagination": [1, 2],
            "style": "oscuro",
            "header_structure": "plano",
            "preload_rows": {"a": 1},
        })
        assert config.row_controls.initial_rows is None
        assert config.pagination.enabled is False
        assert config.style.table_border is False
        assert config.header_structure is None
        assert config.preload_rows is None

    def test_initial_rows_default(self):
        """Sin initial_rows (o con 0) se usa 1."""
        assert TableConfig.model_validate({"columns": []}).initial_rows == 1
        config = TableConfig.model_validate({"row_controls": {"initial_rows": 0}})
        assert config.initial_rows == 1
        config = TableConfig.model_validate({"row_controls": {"initial_rows": 3}})
        assert config.initial_rows == 3

    def test_page_size(self):
        """page_size es None sin paginación y usa el default si falta el tamaño."""
        assert TableConfig.model_validate({}).page_size() is None
        config = TableConfig.model_validate({"pagination": {"enabled": True}})
        assert config.page_size() == 5
        assert config.page_size(default=8) == 8
        config = TableConfig.model_validate({"pagination": {"enabled": True, "rows_per_page": 3}})
        assert config.page_size() == 3

    def test_row_mode(self):
        """mode se interpreta como enum."""
        config = TableConfig.model_validate({"row_controls": {"mode": "fixed"}})
        assert config.row_controls.mode == RowMode.FIXED

    def test_preload_rows_keep_only_dicts(self):
        """preload_rows descarta entradas que no son objetos."""
        config = TableConfig.model_validate({"preload_rows": [{"a": 1}, 3, "x"]})
        assert config.preload_rows == [{"a": 1}]


class TestTableSchema:
    """Tests para TableSchema.from_document."""

    def test_wrapped_document(self):
        """Acepta {'table_config': {...}}."""
        schema = TableSchema.from_document({"table_config": {"columns": [{"field_id": "a"}]}})
        assert schema.table_config.columns[0].field_id == "a"

    def test_bare_document(self):
        """Acepta la configuración directamente."""
        schema = TableSchema.from_document({"columns": [{"field_id": "a"}]})
        assert len(schema.table_config.columns) == 1

    def test_json_text_and_path(self, tmp_path):
        """Acepta texto JSON y rutas a archivo."""
        doc = {"columns": [{"field_id": "a"}]}
        assert TableSchema.from_document(json.dumps(doc)).table_config.columns
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(doc), encoding="utf-8")
        assert TableSchema.from_document(path).table_config.columns

    def test_non_object_root_raises(self):
        """Un documento que no es objeto es un error."""
        with pytest.raises(ValueError):
            TableSchema.from_document("[1, 2]")


class TestSettings:
    """Tests para la configuración del motor."""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Sin archivo se usan los valores por defecto."""
        settings = load_settings(tmp_path / "no_existe.json")
        assert settings.default_rows_per_page == 5
        assert settings.enrichment_query_param == "value"

    def test_load_from_file(self, tmp_path):
        """Lee valores desde JSON."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"default_rows_per_page": 10, "log_level": "debug"}), encoding="utf-8")
        settings = load_settings(path)
        assert settings.default_rows_per_page == 10
        assert settings.log_level == "DEBUG"

    def test_invalid_file_uses_defaults(self, tmp_path):
        """Un archivo inválido no es fatal."""
        path = tmp_path / "settings.json"
        path.write_text("{no es json", encoding="utf-8")
        assert load_settings(path) == EngineSettings()

    def test_singleton(self):
        """get_settings retorna la misma instancia hasta reset."""
        custom = EngineSettings(default_rows_per_page=7)
        reset_settings(custom)
        assert get_settings() is custom
