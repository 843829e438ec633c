"""Command runner for the jsonmap CLI."""
import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
from colorama import Fore, Style

from config import AppConfig, app_config
from jsonmap.api.source_client import SourceClient
from jsonmap.builder.config_builder import MappingConfigBuilder
from jsonmap.builder.payload_builder import MappingApplier
from jsonmap.exceptions import MappingError
from jsonmap.exporter.json_exporter import JsonExporter
from jsonmap.introspection.field_extractor import ExtractOptions, extract_fields, extract_source_fields
from jsonmap.mapper.heuristic import HeuristicMapper
from jsonmap.schema.models import MappingConfig, SourceDescriptor
from jsonmap.transformer.registry import TransformerRegistry, validate_transform_config
from jsonmap.validator.config_validator import validate_config


def parse_value(text: str) -> Any:
    """Read a command-line value as JSON, falling back to the raw text."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def parse_source_option(option: str) -> Tuple[str, str]:
    """Split an "id=location" option."""
    source_id, sep, location = option.partition("=")
    if not sep or not source_id or not location:
        raise click.BadParameter(f"Expected ID=LOCATION, got {option!r}")
    return source_id, location


class MapperCLI:
    """Runs the jsonmap commands."""

    def __init__(self, config: Optional[AppConfig] = None):
        """Initialize CLI."""
        self.config = config or app_config
        self.client = SourceClient(self.config.http)
        self.exporter = JsonExporter()
        self.registry = TransformerRegistry()

    def print_header(self, title: str):
        """Print a section header."""
        click.echo(f"\n{Fore.CYAN}{'━' * 45}")
        click.echo(f"{Fore.CYAN}{title}")
        click.echo(f"{Fore.CYAN}{'━' * 45}{Style.RESET_ALL}\n")

    def extract_options(self, max_depth: Optional[int] = None) -> ExtractOptions:
        return ExtractOptions(
            max_depth=max_depth or self.config.max_depth,
            max_array_indices=self.config.max_array_indices,
        )

    def emit(self, output: Any, output_file: Optional[str]) -> None:
        """Write output to a file, or print it."""
        if output_file:
            self.exporter.export_output(Path(output_file), output)
            click.echo(f"{Fore.GREEN}✅ Output written to {output_file}")
        else:
            click.echo(json.dumps(output, indent=2, default=str, ensure_ascii=False))

    # ========================================================================
    # Commands
    # ========================================================================

    def apply(
        self,
        config_file: str,
        input_location: Optional[str],
        sources: List[str],
        output_file: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> bool:
        """Apply a saved configuration to one document or to several keyed sources."""
        try:
            mapping_config = self.exporter.load_config(Path(config_file))
            applier = MappingApplier(registry=self.registry)
            limit = limit if limit is not None else self.config.preview_limit

            if sources:
                locations = dict(parse_source_option(option) for option in sources)
                documents = self.client.load_all(locations)
                output = applier.apply_sources(documents, mapping_config, limit)
            elif input_location:
                document = self.client.load(input_location)
                output = applier.apply(document, mapping_config, limit)
            else:
                click.echo(f"{Fore.RED}Provide --input or at least one --source")
                return False
        except MappingError as e:
            click.echo(f"{Fore.RED}Error: {e}")
            return False

        self.emit(output, output_file)
        return True

    def validate(self, config_file: str) -> bool:
        """Validate a saved configuration and report errors and warnings."""
        self.print_header("Validate Configuration")
        try:
            mapping_config = self.exporter.load_config(Path(config_file))
        except MappingError as e:
            click.echo(f"{Fore.RED}Error: {e}")
            return False

        result = validate_config(mapping_config)
        for error in result.errors:
            click.echo(f"{Fore.RED}✗ {error}")
        for warning in result.warnings:
            click.echo(f"{Fore.YELLOW}⚠ {warning}")

        if result.valid:
            click.echo(f"{Fore.GREEN}✅ Configuration is valid ({len(result.warnings)} warnings)")
        else:
            click.echo(f"{Fore.RED}Configuration has {len(result.errors)} errors")
        return result.valid

    def fields(self, location: str, primary_path: str = "", max_depth: Optional[int] = None) -> bool:
        """List the mappable fields of a source document."""
        self.print_header("Source Fields")
        try:
            document = self.client.load(location)
        except MappingError as e:
            click.echo(f"{Fore.RED}Error: {e}")
            return False

        source = SourceDescriptor(id="source", name=location, primary_path=primary_path)
        descriptors = extract_source_fields(document, source, self.extract_options(max_depth))

        click.echo(f"{Fore.CYAN}Found {len(descriptors)} fields")
        for descriptor in descriptors:
            suffix = f" ({descriptor.array_length} items)" if descriptor.array_length is not None else ""
            click.echo(f"  {descriptor.path:<50} {descriptor.type}{suffix}")
        return True

    def automap(
        self,
        config_file: str,
        input_location: str,
        threshold: Optional[float] = None,
        save: bool = False,
    ) -> bool:
        """Propose mappings for unmapped template fields, optionally saving them."""
        self.print_header("Auto-Mapping")
        try:
            mapping_config = self.exporter.load_config(Path(config_file))
            document = self.client.load(input_location)
        except MappingError as e:
            click.echo(f"{Fore.RED}Error: {e}")
            return False

        source_fields = self._source_fields(document, mapping_config)
        mapper = HeuristicMapper(threshold if threshold is not None else self.config.automap_threshold)
        suggestions = mapper.suggest(
            [f for f in source_fields if f.is_leaf],
            mapping_config.output_template.leaves(),
            existing=mapping_config.field_mappings,
        )

        click.echo(f"{Fore.CYAN}Generated {len(suggestions)} mappings")
        for suggestion in suggestions:
            mapping = suggestion.mapping
            click.echo(
                f"{Fore.GREEN}✓ {mapping.source_path} → {mapping.target_path} "
                f"({suggestion.confidence:.0%})"
            )

        if save and suggestions:
            builder = MappingConfigBuilder(mapping_config)
            builder.add_mappings([s.mapping for s in suggestions])
            self.exporter.export_config(Path(config_file), builder.config)
            click.echo(f"{Fore.GREEN}✅ Saved {len(suggestions)} mappings to {config_file}")
        return True

    def transform(self, transform_type: str, value: str, config_json: Optional[str] = None) -> bool:
        """Apply one transformation to a value and print the result."""
        try:
            transform_config: Dict[str, Any] = json.loads(config_json) if config_json else {}
        except ValueError as e:
            click.echo(f"{Fore.RED}Invalid --config JSON: {e}")
            return False
        if not isinstance(transform_config, dict):
            click.echo(f"{Fore.RED}Invalid --config: expected a JSON object")
            return False

        check = validate_transform_config(transform_type, transform_config)
        if not check.valid:
            for error in check.errors:
                click.echo(f"{Fore.RED}✗ {error}")
            return False

        result = self.registry.transform(parse_value(value), transform_type, transform_config)
        click.echo(json.dumps(result, default=str, ensure_ascii=False))
        return True

    def _source_fields(self, document: Any, mapping_config: MappingConfig):
        selection = mapping_config.source_selection
        source = selection.primary_source
        if source is None:
            return extract_fields(document, "", self.extract_options())
        if not source.primary_path and selection.primary_path:
            source = replace(source, primary_path=selection.primary_path)
        return extract_source_fields(document, source, self.extract_options())
