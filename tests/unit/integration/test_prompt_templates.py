from __future__ import annotations

from pathlib import Path

import pytest

from intrdrm.core.exceptions import PromptTemplateError
from intrdrm.integration.prompts import (
    CRITIC_PRIMARY_TEMPLATE,
    CRITIC_SECONDARY_TEMPLATE,
    GENERATOR_TEMPLATE,
    PromptTemplate,
    TemplateLibrary,
)


def test_builtin_templates_render_all_placeholders() -> None:
    library = TemplateLibrary()

    generator = library.render(GENERATOR_TEMPLATE, CONCEPT_A="recursion", CONCEPT_B="mirrors")
    assert "recursion" in generator and "mirrors" in generator
    assert "{{" not in generator

    for template_id in (CRITIC_PRIMARY_TEMPLATE, CRITIC_SECONDARY_TEMPLATE):
        critic = library.render(template_id, CONNECTION="conn", EXPLANATION="why")
        assert "conn" in critic and "why" in critic
        assert "{{" not in critic


def test_critic_passes_use_different_instructions() -> None:
    library = TemplateLibrary()
    assert library.get(CRITIC_PRIMARY_TEMPLATE).body != library.get(CRITIC_SECONDARY_TEMPLATE).body


def test_missing_variable_is_an_error() -> None:
    with pytest.raises(PromptTemplateError):
        TemplateLibrary().render(GENERATOR_TEMPLATE, CONCEPT_A="only one")


def test_substituted_values_are_not_reexpanded() -> None:
    template = PromptTemplate("t", "{{A}} and {{B}}")
    assert template.render(A="{{B}}", B="x") == "{{B}} and x"


def test_override_directory_takes_precedence(tmp_path: Path) -> None:
    (tmp_path / f"{GENERATOR_TEMPLATE}.md").write_text("Link {{CONCEPT_A}} to {{CONCEPT_B}}", encoding="utf-8")
    library = TemplateLibrary(tmp_path)

    assert library.render(GENERATOR_TEMPLATE, CONCEPT_A="a", CONCEPT_B="b") == "Link a to b"
    assert library.validate() == []


def test_unknown_template_reported_by_validate() -> None:
    library = TemplateLibrary()
    assert library.validate([GENERATOR_TEMPLATE, "critic-run-3"]) == ["critic-run-3"]
