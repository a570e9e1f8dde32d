# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License"). You
# may not use this file except in compliance with the License. A copy of
# the License is located at
#
#     http://aws.amazon.com/apache2.0/
#
# or in the "license" file accompanying this file. This file is
# distributed on an "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF
# ANY KIND, either express or implied. See the License for the specific
# language governing permissions and limitations under the License.
"""
Loader for the cloud catalog.

This module turns a catalog document (a mapping, a JSON or YAML string, or
a file) into a validated CloudCatalog, and serializes catalogs back to the
same document format. The process-wide default catalog is loaded once,
from CLOUD_CATALOG_PATH when set and from the bundled data otherwise.
"""

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from exosphere.cloud_catalog.cloud_catalog_config import CloudCatalog
from exosphere.cloud_catalog.cloud_catalog_utils import CloudCatalogError
from exosphere.cloud_catalog.validators.cloud_catalog_validator import (
    CloudCatalogValidator,
    ValidationError,
)

logger = logging.getLogger(__name__)

CATALOG_PATH_ENV_VAR = "CLOUD_CATALOG_PATH"
BUNDLED_CATALOG_PATH = Path(__file__).parent / "data" / "cloud_configs.json"

SUPPORTED_FORMATS = ("json", "yaml")

CatalogSource = Union[CloudCatalog, dict, list, str, bytes]


class CatalogValidationError(CloudCatalogError):
    """
    Exception raised when a catalog document is malformed or contradictory.

    Attributes:
        errors: The individual validation errors, each naming a field path.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = list(errors)
        lines = ["Cloud catalog is invalid:"]
        lines.extend(f"  - {error}" for error in self.errors)
        super().__init__("\n".join(lines))


class CatalogFileNotFoundError(CloudCatalogError):
    """Exception raised when a catalog file does not exist."""

    pass


def _parse_text(text: Union[str, bytes]) -> Any:
    # JSON first: PyYAML splits \uXXXX surrogate pairs and rejects tab indentation.
    try:
        return json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError):
        pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise CatalogValidationError(
            [
                ValidationError(
                    field="catalog",
                    message=f"Invalid JSON/YAML in catalog document: {e}",
                    error_type="parse_error",
                )
            ]
        )


def load(source: CatalogSource) -> CloudCatalog:
    """
    Parse and validate a catalog document.

    Args:
        source: A mapping or bare list of clouds, JSON or YAML text, or an
            already built CloudCatalog (returned unchanged).

    Returns:
        The validated, immutable CloudCatalog.

    Raises:
        CatalogValidationError: If the document cannot be parsed or breaks
            any schema rule or catalog invariant.
    """
    if isinstance(source, CloudCatalog):
        return source

    document = _parse_text(source) if isinstance(source, (str, bytes)) else source

    validator = CloudCatalogValidator()
    result = validator.validate_config(config_dict=document)
    if not result.is_valid:
        logger.error(validator.get_validation_errors_summary(result))
        raise CatalogValidationError(result.errors)

    catalog = result.config
    logger.debug(
        f"Loaded cloud catalog version {catalog.version} "
        f"with {len(catalog.clouds)} cloud(s)"
    )
    return catalog


def load_file(path: Union[str, Path]) -> CloudCatalog:
    """
    Load a catalog from a JSON or YAML file.

    Args:
        path: Path to the catalog file.

    Returns:
        The validated CloudCatalog.

    Raises:
        CatalogFileNotFoundError: If the file does not exist.
        CatalogValidationError: If the file content is not a valid catalog.
    """
    catalog_file = Path(path)
    if not catalog_file.is_file():
        raise CatalogFileNotFoundError(f"Catalog file not found: {catalog_file}")

    logger.info(f"Loading cloud catalog from {catalog_file}")
    with open(catalog_file, "r", encoding="utf-8") as f:
        return load(f.read())


def dump(catalog: CloudCatalog, fmt: str = "json") -> str:
    """
    Serialize a catalog to its document format.

    Args:
        catalog: The catalog to serialize.
        fmt: Either "json" or "yaml".

    Returns:
        The serialized document; loading it again yields an equal catalog.

    Raises:
        ValueError: If fmt is not a supported format.
    """
    document = catalog.to_document()
    if fmt == "json":
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
    if fmt == "yaml":
        return yaml.safe_dump(document, default_flow_style=False, sort_keys=False)
    raise ValueError(
        f"Unsupported catalog format '{fmt}'. Supported formats: {list(SUPPORTED_FORMATS)}"
    )


def resolve_catalog_path(path: Optional[Union[str, Path]] = None) -> Path:
    """
    Work out which catalog file to load.

    An explicit path wins, then the CLOUD_CATALOG_PATH environment
    variable, then the catalog bundled with this package.
    """
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CATALOG_PATH_ENV_VAR)
    if env_path:
        return Path(env_path)
    return BUNDLED_CATALOG_PATH


@lru_cache(maxsize=None)
def get_default_catalog() -> CloudCatalog:
    """
    Return the process-wide catalog, loading it on first use.

    The result is cached for the life of the process; the catalog is
    immutable, so concurrent readers need no locking.
    """
    return load_file(resolve_catalog_path())
