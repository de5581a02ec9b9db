"""Tests for ForgeConfig loading and validation."""

from pathlib import Path

import pytest

from uiforge.config import (
    ALLOWED_TIER_DEPENDENCIES,
    LINT_COMMAND,
    MAX_FINAL_CHECK_ATTEMPTS,
    ForgeConfig,
    Tier,
    WorkflowPhase,
)
from uiforge.exceptions import WorkflowConfigError

# ---------------------------------------------------------------------------
# Enums and constants
# ---------------------------------------------------------------------------


class TestWorkflowPhase:
    def test_graph_order(self):
        assert [phase.value for phase in WorkflowPhase] == [
            "init",
            "analyze",
            "setup",
            "generate",
            "generate_stories",
            "validate",
            "typescript_fix",
            "quality_review",
            "final_check",
            "decide_next",
            "finalize",
            "end",
        ]


class TestTierDependencies:
    def test_elements_never_depend_on_higher_tiers(self):
        assert Tier.COMPONENTS not in ALLOWED_TIER_DEPENDENCIES[Tier.ELEMENTS]
        assert Tier.MODULES not in ALLOWED_TIER_DEPENDENCIES[Tier.ELEMENTS]

    def test_icons_are_leaves(self):
        assert ALLOWED_TIER_DEPENDENCIES[Tier.ICONS] == frozenset()


# ---------------------------------------------------------------------------
# ForgeConfig
# ---------------------------------------------------------------------------


class TestForgeConfigDefaults:
    def test_defaults(self):
        config = ForgeConfig()
        assert config.max_batch_size == 10
        assert config.delay_between_batches_ms == 1000
        assert config.max_retries == 3
        assert config.initial_retry_delay_ms == 2000
        assert config.backoff_multiplier == 2.0
        assert config.max_final_check_attempts == MAX_FINAL_CHECK_ATTEMPTS
        assert config.review_warnings is False
        assert config.enable_tracking is False

    def test_project_root_defaults_to_parent_of_output(self, tmp_path):
        config = ForgeConfig(output_dir=tmp_path / "ui")
        assert config.resolved_project_root == tmp_path.resolve()

    def test_explicit_project_root_wins(self, tmp_path):
        config = ForgeConfig(output_dir=tmp_path / "ui", project_root=tmp_path / "app")
        assert config.resolved_project_root == tmp_path / "app"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_batch_size", 0),
            ("max_final_check_attempts", 0),
            ("max_fix_attempts", 0),
            ("max_iterations", 0),
            ("max_retries", -1),
            ("backoff_multiplier", 0.5),
        ],
    )
    def test_invalid_values_raise(self, field, value):
        with pytest.raises(WorkflowConfigError):
            ForgeConfig(**{field: value})


class TestForgeConfigFromEnv:
    def test_reads_uiforge_variables(self, monkeypatch):
        monkeypatch.setenv("UIFORGE_OUTPUT_DIR", "web/ui")
        monkeypatch.setenv("UIFORGE_MAX_BATCH_SIZE", "5")
        monkeypatch.setenv("UIFORGE_MAX_RETRIES", "1")
        monkeypatch.setenv("UIFORGE_REVIEW_WARNINGS", "yes")
        monkeypatch.setenv("UIFORGE_IMPORT_ALIAS", "~/components")

        config = ForgeConfig.from_env()

        assert config.output_dir == Path("web/ui")
        assert config.max_batch_size == 5
        assert config.max_retries == 1
        assert config.review_warnings is True
        assert config.import_alias == "~/components"

    def test_unset_variables_use_defaults(self, monkeypatch):
        for name in ("UIFORGE_OUTPUT_DIR", "UIFORGE_MAX_BATCH_SIZE", "UIFORGE_PROJECT_ROOT"):
            monkeypatch.delenv(name, raising=False)
        config = ForgeConfig.from_env()
        assert config.output_dir == Path("ui")
        assert config.project_root is None

    def test_non_integer_raises_config_error(self, monkeypatch):
        monkeypatch.setenv("UIFORGE_MAX_BATCH_SIZE", "ten")
        with pytest.raises(WorkflowConfigError, match="UIFORGE_"):
            ForgeConfig.from_env()


class TestForgeConfigFromYaml:
    def test_loads_mapping(self, tmp_path):
        path = tmp_path / "uiforge.yaml"
        path.write_text(
            "output_dir: app/ui\n"
            "max_batch_size: 4\n"
            "review_warnings: true\n"
            "lint_command: [npx, eslint, --format, json]\n"
        )

        config = ForgeConfig.from_yaml(path)

        assert config.output_dir == Path("app/ui")
        assert config.max_batch_size == 4
        assert config.review_warnings is True
        assert config.lint_command == ("npx", "eslint", "--format", "json")

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "uiforge.yaml"
        path.write_text("")
        config = ForgeConfig.from_yaml(path)
        assert config.lint_command == LINT_COMMAND

    def test_unknown_keys_raise(self, tmp_path):
        path = tmp_path / "uiforge.yaml"
        path.write_text("max_batch_size: 4\nturbo: true\n")
        with pytest.raises(WorkflowConfigError, match="turbo"):
            ForgeConfig.from_yaml(path)

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "uiforge.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(WorkflowConfigError, match="mapping"):
            ForgeConfig.from_yaml(path)

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "uiforge.yaml"
        path.write_text("max_batch_size: [1, 2\n")
        with pytest.raises(WorkflowConfigError):
            ForgeConfig.from_yaml(path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(WorkflowConfigError, match="Could not read"):
            ForgeConfig.from_yaml(tmp_path / "missing.yaml")
