"""Prompt blocks for context and memory files."""

from .models import ContextFile, MemoryFileInfo

CONTEXT_PROMPT_TEMPLATE = """# Project Context Files

The following context files provide project-specific rules, conventions, and guidelines.
Each file serves a specific purpose - use the description to understand when to reference it.
If you need more details about a context file, you can read the full file at the path provided.

**IMPORTANT**: You MUST follow the rules and conventions specified in these files.
- Follow ALL commands exactly as shown (e.g., if the project uses `pnpm`, NEVER use `npm` or `npx`)
- Follow ALL coding conventions, commit message formats, and architectural patterns specified
- Reference these rules before running ANY shell commands or making commits

---

{entries}

---

**REMINDER**: Before taking any action, verify you are following the conventions specified above.
"""

MEMORY_PROMPT_TEMPLATE = """# Project Memory

The following learnings and decisions from previous work are available.
**IMPORTANT**: Review these carefully before making changes that could conflict with past decisions.

---

{entries}

---
"""

ENTRY_SEPARATOR = "\n\n---\n\n"


def format_context_file_entry(file: ContextFile) -> str:
    """Format one context file: name, path, optional purpose, content."""
    lines = [f"## {file.name}", f"**Path:** `{file.path}`"]
    if file.description:
        lines.append(f"**Purpose:** {file.description}")
    return "\n".join(lines) + f"\n\n{file.content}"


def build_context_prompt(files: list[ContextFile]) -> str:
    """Build the context files section, or an empty string if none."""
    if not files:
        return ""

    entries = ENTRY_SEPARATOR.join(format_context_file_entry(f) for f in files)
    return CONTEXT_PROMPT_TEMPLATE.format(entries=entries)


def build_memory_prompt(memory_files: list[MemoryFileInfo]) -> str:
    """Build the project memory section, or an empty string if none."""
    if not memory_files:
        return ""

    entries = ENTRY_SEPARATOR.join(
        f"## {f.category.upper()}\n\n{f.content}" for f in memory_files
    )
    return MEMORY_PROMPT_TEMPLATE.format(entries=entries)


def combine_prompt_sections(*sections: str) -> str:
    """Join non-empty sections with a blank line."""
    return "\n\n".join(s for s in sections if s)
