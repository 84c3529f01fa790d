"""
Text artifact rewriting for migration steps.

Every function here is pure: text (or a parsed document) in, text out. The
executor reads the files, captures before-images for rollback, and writes
the results.

Artifacts:
    - Project manifests (``<Service>.<Layer>.csproj``)
    - Namespace declarations and ``using`` directives in source files
    - The solution file (``<Service>.sln``)
    - JSON settings files (``appsettings.json`` and friends)
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Mapping
from pathlib import PurePosixPath
from typing import Any

PROJECT_TYPES = ("Domain", "Application", "Infrastructure", "Api")

# Project -> projects it references, along the layer graph
LAYER_DEPENDENCIES: dict[str, tuple[str, ...]] = {
    "Domain": (),
    "Application": ("Domain",),
    "Infrastructure": ("Application", "Domain"),
    "Api": ("Application", "Infrastructure"),
}

CSHARP_PROJECT_TYPE_GUID = "FAE04EC0-301F-11D3-BF4B-00C04F79EFBC"
_SOLUTION_NAMESPACE = uuid.UUID("6ba7b811-9dad-11d1-80b4-00c04fd430c8")

_PROPERTY_GROUP = """  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
    <ImplicitUsings>enable</ImplicitUsings>
    <Nullable>enable</Nullable>
  </PropertyGroup>"""

_PACKAGES: dict[str, tuple[tuple[str, str], ...]] = {
    "Domain": (("AggregateKit", "0.2.0"),),
    "Application": (("WolverineFx", "3.5.0"), ("FluentValidation", "11.9.0")),
    "Infrastructure": (
        ("Microsoft.EntityFrameworkCore", "8.0.0"),
        ("Npgsql.EntityFrameworkCore.PostgreSQL", "8.0.0"),
    ),
    "Api": (("Swashbuckle.AspNetCore", "6.5.0"),),
}

# Layers whose manifest already references another layer at creation
_INITIAL_REFERENCES: dict[str, tuple[str, ...]] = {
    "Domain": (),
    "Application": ("Domain",),
    "Infrastructure": ("Application", "Domain"),
    "Api": ("Application",),
}

_NAMESPACE_DECLARATION = re.compile(
    r"^(?P<indent>[ \t]*)namespace[ \t]+(?P<name>[\w.]+)(?P<tail>[ \t]*[;{]?)",
    re.MULTILINE,
)
_USING_DIRECTIVE = re.compile(
    r"^(?P<indent>[ \t]*)(?P<prefix>(?:global[ \t]+)?using[ \t]+(?:static[ \t]+)?)"
    r"(?P<name>[\w.]+)[ \t]*;",
    re.MULTILINE,
)
_SOLUTION_PROJECT = re.compile(
    r'^Project\("\{[^}]*\}"\)\s*=\s*"(?P<name>[^"]*)",\s*"(?P<path>[^"]*)",\s*"\{(?P<guid>[^}]*)\}"',
    re.MULTILINE,
)
_PROJECT_REFERENCE = re.compile(r'<ProjectReference\s+Include="([^"]*)"')
_PROJECT_CLOSE = "</Project>"


def project_name(service_name: str, project_type: str) -> str:
    return f"{service_name}.{project_type}"


def manifest_reference(service_name: str, project_type: str) -> str:
    """Relative Include path from one layer project to another layer's manifest."""
    name = project_name(service_name, project_type)
    return f"..\\{name}\\{name}.csproj"


def _reference_line(include: str) -> str:
    return f'    <ProjectReference Include="{include}" />'


def render_project_manifest(project_type: str, service_name: str) -> str:
    """
    Render the manifest for a new layer project.

    Args:
        project_type: Domain, Application, Infrastructure or Api.
        service_name: Name of the service.

    Returns:
        The manifest text.

    Raises:
        ValueError: If the project type is unknown.
    """
    if project_type not in PROJECT_TYPES:
        raise ValueError(f"Unknown project type: {project_type}")

    sdk = "Microsoft.NET.Sdk.Web" if project_type == "Api" else "Microsoft.NET.Sdk"
    lines = [f'<Project Sdk="{sdk}">', _PROPERTY_GROUP]

    references = _INITIAL_REFERENCES[project_type]
    if references:
        lines.append("  <ItemGroup>")
        lines.extend(
            _reference_line(manifest_reference(service_name, ref)) for ref in references
        )
        lines.append("  </ItemGroup>")

    lines.append("  <ItemGroup>")
    lines.extend(
        f'    <PackageReference Include="{name}" Version="{version}" />'
        for name, version in _PACKAGES[project_type]
    )
    lines.append("  </ItemGroup>")
    lines.append(_PROJECT_CLOSE)
    return "\n".join(lines) + "\n"


def existing_project_references(manifest: str) -> list[str]:
    return _PROJECT_REFERENCE.findall(manifest)


def add_project_references(manifest: str, includes: Iterable[str]) -> str:
    """
    Add ``<ProjectReference>`` entries that the manifest does not have yet.

    Missing references go into a new ItemGroup before ``</Project>``.
    Comparison ignores path separator style and case.

    Returns:
        The manifest, unchanged if nothing was missing.

    Raises:
        ValueError: If the manifest has no closing ``</Project>`` tag.
    """

    def normalize(include: str) -> str:
        return include.replace("/", "\\").lower()

    present = {normalize(ref) for ref in existing_project_references(manifest)}
    missing = []
    for include in includes:
        if normalize(include) not in present:
            missing.append(include)
            present.add(normalize(include))
    if not missing:
        return manifest

    close = manifest.rfind(_PROJECT_CLOSE)
    if close < 0:
        raise ValueError("Project manifest has no closing </Project> tag")

    group = "  <ItemGroup>\n"
    group += "".join(_reference_line(include) + "\n" for include in missing)
    group += "  </ItemGroup>\n"
    return manifest[:close] + group + manifest[close:]


def required_references(
    service_name: str,
    project_type: str,
    present_types: Iterable[str],
) -> list[str]:
    """
    Include paths a layer project must reference, limited to layers that exist.

    Api references Infrastructure only when an Infrastructure project exists.
    """
    present = set(present_types)
    return [
        manifest_reference(service_name, dependency)
        for dependency in LAYER_DEPENDENCIES.get(project_type, ())
        if dependency in present
    ]


def layer_namespace(service_name: str, layer: str, subdirectories: Iterable[str] = ()) -> str:
    """``<Service>.<Layer>`` followed by one segment per subdirectory."""
    return ".".join([service_name, layer, *subdirectories])


def namespace_for_file(service_name: str, layer: str, relative_path: PurePosixPath) -> str:
    """Namespace of a source file at ``relative_path`` inside a layer project."""
    return layer_namespace(service_name, layer, relative_path.parent.parts)


def declared_namespace(source: str) -> str | None:
    match = _NAMESPACE_DECLARATION.search(source)
    return match.group("name") if match else None


def rewrite_namespace(source: str, namespace: str) -> str:
    """
    Replace the first namespace declaration in a source file.

    Both file-scoped (``namespace A.B;``) and block (``namespace A.B {``)
    declarations are handled. Files with no declaration are returned as is.
    """

    def replace(match: re.Match[str]) -> str:
        return f"{match.group('indent')}namespace {namespace}{match.group('tail')}"

    return _NAMESPACE_DECLARATION.sub(replace, source, count=1)


def rewrite_usings(source: str, renames: Mapping[str, str]) -> str:
    """Rewrite ``using`` directives whose namespace was renamed."""
    if not renames:
        return source

    def replace(match: re.Match[str]) -> str:
        name = match.group("name")
        if name not in renames:
            return match.group(0)
        return f"{match.group('indent')}{match.group('prefix')}{renames[name]};"

    return _USING_DIRECTIVE.sub(replace, source)


def project_guid(relative_manifest: str) -> str:
    """Stable project GUID derived from the manifest's solution-relative path."""
    return str(uuid.uuid5(_SOLUTION_NAMESPACE, relative_manifest.lower())).upper()


def solution_projects(solution: str) -> list[tuple[str, str, str]]:
    """
    Projects listed in a solution file.

    Returns:
        (name, manifest path, GUID) triples in file order. Paths keep the
        solution's backslashes; GUIDs are returned without braces.
    """
    return [
        (match.group("name"), match.group("path"), match.group("guid").upper())
        for match in _SOLUTION_PROJECT.finditer(solution)
    ]


def render_solution(
    projects: Iterable[tuple[str, str]],
    guids: Mapping[str, str] | None = None,
) -> str:
    """
    Render a solution file listing ``projects``.

    Args:
        projects: (project name, solution-relative manifest path) pairs. Paths
            use backslashes, as Visual Studio writes them.
        guids: GUIDs to keep for already-listed projects, keyed by lowercased
            manifest path.

    Returns:
        The solution text. Projects without a kept GUID get one derived from
        their path, so the same projects always yield the same text.
    """
    known = guids or {}
    entries = sorted(projects, key=lambda item: item[1].lower())
    lines = [
        "",
        "Microsoft Visual Studio Solution File, Format Version 12.00",
        "# Visual Studio Version 17",
        "VisualStudioVersion = 17.0.31903.59",
        "MinimumVisualStudioVersion = 10.0.40219.1",
    ]
    entry_guids = [known.get(path.lower()) or project_guid(path) for _, path in entries]
    for (name, path), guid in zip(entries, entry_guids, strict=True):
        lines.append(
            f'Project("{{{CSHARP_PROJECT_TYPE_GUID}}}") = "{name}", "{path}", "{{{guid}}}"'
        )
        lines.append("EndProject")
    lines.extend(
        [
            "Global",
            "\tGlobalSection(SolutionConfigurationPlatforms) = preSolution",
            "\t\tDebug|Any CPU = Debug|Any CPU",
            "\t\tRelease|Any CPU = Release|Any CPU",
            "\tEndGlobalSection",
            "\tGlobalSection(ProjectConfigurationPlatforms) = postSolution",
        ]
    )
    for guid in entry_guids:
        for configuration in ("Debug", "Release"):
            lines.append(f"\t\t{{{guid}}}.{configuration}|Any CPU.ActiveCfg = {configuration}|Any CPU")
            lines.append(f"\t\t{{{guid}}}.{configuration}|Any CPU.Build.0 = {configuration}|Any CPU")
    lines.extend(["\tEndGlobalSection", "EndGlobal", ""])
    return "\n".join(lines)


def merge_settings(document: Mapping[str, Any], changes: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """
    Deep-merge dotted-key changes into a settings document.

    ``("Logging.LogLevel.Default", "Warning")`` sets
    ``document["Logging"]["LogLevel"]["Default"]``, creating intermediate
    objects as needed. The input document is not modified.

    Raises:
        ValueError: If a key is empty or a path runs through a non-object value.
    """
    merged = _deep_copy(document)
    for key, value in changes:
        parts = key.split(".")
        if not all(parts):
            raise ValueError(f"Invalid settings key: {key!r}")
        node = merged
        for index, part in enumerate(parts[:-1]):
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                path = ".".join(parts[: index + 1])
                raise ValueError(f"Cannot set {key!r}: {path!r} is not an object")
            node = child
        node[parts[-1]] = _deep_copy(value)
    return merged


def _deep_copy(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _deep_copy(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_deep_copy(v) for v in value]
    return value


__all__ = [
    "PROJECT_TYPES",
    "LAYER_DEPENDENCIES",
    "project_name",
    "manifest_reference",
    "render_project_manifest",
    "existing_project_references",
    "add_project_references",
    "required_references",
    "layer_namespace",
    "namespace_for_file",
    "declared_namespace",
    "rewrite_namespace",
    "rewrite_usings",
    "project_guid",
    "solution_projects",
    "render_solution",
    "merge_settings",
]
