from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ConfigFragment(BaseModel):
    """One layer of configuration (CLI, project file or user dotfile).

    A field left at ``None`` is *absent*: it lets the next layer decide. An
    empty ``exclude`` list is *present* and overrides lower layers.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    exclude: list[str] | None = Field(default=None, description="Paths or names to exclude.")
    output: str | None = Field(default=None, description="Output file path.")
    output_dir: str | None = Field(
        default=None,
        alias="outputDir",
        description="Directory receiving an auto-named export file.",
    )


class EffectiveConfig(BaseModel):
    """Configuration after merging every fragment by precedence."""

    model_config = ConfigDict(frozen=True)

    exclude: list[str] = Field(default_factory=list, description="Resolved exclusion list.")
    output: str | None = Field(default=None, description="Resolved output file path.")
    output_dir: str | None = Field(default=None, description="Resolved output directory.")


def resolve_config(
    cli: ConfigFragment,
    project: ConfigFragment,
    user: ConfigFragment,
) -> EffectiveConfig:
    """Merge configuration fragments, highest precedence first.

    For each field the first fragment where the field is present wins, even when
    its value is empty. Absent ``exclude`` everywhere resolves to ``[]``.

    Args:
        cli (ConfigFragment): values parsed from the command line
        project (ConfigFragment): values from the project config file
        user (ConfigFragment): values from ``~/.kodexorrc``

    Returns:
        EffectiveConfig: the merged configuration
    """
    layers = (cli, project, user)

    def first_present(field: str) -> object:
        for layer in layers:
            value = getattr(layer, field)
            if value is not None:
                return value
        return None

    exclude = first_present("exclude")
    return EffectiveConfig(
        exclude=list(exclude) if exclude is not None else [],
        output=first_present("output"),
        output_dir=first_present("output_dir"),
    )
