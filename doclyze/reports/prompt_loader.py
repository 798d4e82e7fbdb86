from pathlib import Path

from doclyze.reports.exceptions import PromptLoadError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"
_DEFAULT_RULES_DIR = Path(__file__).parent / "rules"

RULE_CORPORA: tuple[tuple[str, str], ...] = (
    ("IBC", "ibc_rules.json"),
    ("Eurocodes", "eurocodes_rules.json"),
    ("IS", "is_rules.json"),
)


def load_prompt_template(name: str, prompt_dir: Path | None = None) -> str:
    """Load a prompt template by file stem, e.g. ``extraction``.

    Raises:
        PromptLoadError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / f"{name}.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PromptLoadError(f"Failed to load prompt template {path.name}: {exc}") from exc


def load_rule_corpus(rules_dir: Path | None = None) -> str:
    """Concatenate the compliance rule sets into one prompt section.

    Raises:
        PromptLoadError: if any rule file cannot be read.
    """
    directory = rules_dir or _DEFAULT_RULES_DIR
    sections = []
    for title, file_name in RULE_CORPORA:
        try:
            content = (directory / file_name).read_text(encoding="utf-8")
        except OSError as exc:
            raise PromptLoadError(f"Failed to load compliance rules {file_name}: {exc}") from exc
        sections.append(f"{title} Rules:\n---\n{content.strip()}\n---")
    return "\n\n".join(sections)
