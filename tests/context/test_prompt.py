"""Tests for prompt formatting."""

from automaker_memory.context import ContextFile, MemoryFileInfo, build_context_prompt, build_memory_prompt
from automaker_memory.context.prompt import combine_prompt_sections, format_context_file_entry


def test_context_entry_with_description():
    entry = format_context_file_entry(
        ContextFile("rules.md", "/p/rules.md", "Use pnpm", description="Tooling rules")
    )
    assert entry == (
        "## rules.md\n"
        "**Path:** `/p/rules.md`\n"
        "**Purpose:** Tooling rules\n"
        "\n"
        "Use pnpm"
    )


def test_context_entry_without_description():
    entry = format_context_file_entry(ContextFile("rules.md", "/p/rules.md", "Use pnpm"))
    assert "**Purpose:**" not in entry


def test_empty_sections():
    """No files means no section at all."""
    assert build_context_prompt([]) == ""
    assert build_memory_prompt([]) == ""


def test_context_prompt_separates_entries():
    prompt = build_context_prompt([
        ContextFile("a.md", "/p/a.md", "first"),
        ContextFile("b.md", "/p/b.md", "second"),
    ])

    assert prompt.startswith("# Project Context Files\n")
    assert "first\n\n---\n\n## b.md" in prompt
    assert prompt.rstrip().endswith("verify you are following the conventions specified above.")


def test_context_content_with_braces():
    """File content is inserted verbatim."""
    prompt = build_context_prompt([ContextFile("a.md", "/p/a.md", "const x = {entries};")])
    assert "const x = {entries};" in prompt


def test_memory_prompt_uses_category_heading():
    prompt = build_memory_prompt([
        MemoryFileInfo("auth-decisions.md", "/p/auth-decisions.md", "Use JWT", "auth-decisions"),
    ])

    assert prompt.startswith("# Project Memory\n")
    assert "## AUTH-DECISIONS\n\nUse JWT" in prompt


def test_combine_skips_empty_sections():
    assert combine_prompt_sections("a", "", "b") == "a\n\nb"
    assert combine_prompt_sections("", "") == ""
