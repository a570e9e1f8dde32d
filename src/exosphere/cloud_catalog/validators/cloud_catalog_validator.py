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
Validator for cloud catalog documents.

This module provides non-raising validation for catalog documents:
schema validation through the pydantic models, plus semantic checks
(unique Keystone hostnames, a single primary version per instance type,
non-empty flavor restrictions) reported with the path of the offending
field.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from exosphere.cloud_catalog.cloud_catalog_config import (
    INVARIANT_ERROR_TYPES,
    CloudCatalog,
    normalize_hostname,
)
from exosphere.cloud_catalog.registry import SCHEMA_REGISTRY, normalize_document
from exosphere.cloud_catalog.validators.validator import Validator
from exosphere.cloud_catalog.utils import setup_logger

logger = setup_logger(__name__)



@dataclass
class ValidationError:
    """
    Represents a validation error with field name and error message.

    Attributes:
        field: Dotted path of the field that failed validation.
        message: A human-readable error message describing the validation failure.
        error_type: The type/category of the validation error.
    """
    field: str
    message: str
    error_type: str = "validation_error"

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class ValidationResult:
    """
    Result of a validation operation.

    Attributes:
        is_valid: True if validation passed, False otherwise.
        errors: List of validation errors if validation failed.
        config: The parsed catalog when validation passed.
    """
    is_valid: bool = True
    errors: List[ValidationError] = field(default_factory=list)
    config: Optional[CloudCatalog] = None

    def add_error(self, field: str, message: str, error_type: str = "validation_error") -> None:
        """Add a validation error to the result."""
        self.errors.append(ValidationError(field=field, message=message, error_type=error_type))
        self.is_valid = False

    def merge(self, other: "ValidationResult") -> None:
        """Merge another validation result into this one."""
        if not other.is_valid:
            self.is_valid = False
            self.errors.extend(other.errors)


class CloudCatalogValidator(Validator):
    """
    Validator for cloud catalog documents.

    Raw documents are checked for semantic problems first so that
    duplicates and conflicting primaries are reported against the exact
    field, then parsed into the models.
    """

    def __init__(self):
        """Initialize the CloudCatalogValidator."""
        super().__init__()

    def validate(self) -> ValidationResult:
        """
        Abstract validate method implementation.

        For CloudCatalogValidator, use validate_config() with a document.
        """
        return ValidationResult(is_valid=True)

    def validate_config(
        self,
        config: Optional[CloudCatalog] = None,
        config_dict: Optional[Any] = None,
    ) -> ValidationResult:
        """
        Validate a whole cloud catalog.

        Args:
            config: An already parsed CloudCatalog to re-check.
            config_dict: A raw document (mapping, or a bare list of clouds)
                        to parse into a CloudCatalog.

        Returns:
            ValidationResult containing validation status, any errors and,
            on success, the parsed catalog.

        Note:
            Either config or config_dict must be provided, but not both.
        """
        result = ValidationResult()

        if config is None and config_dict is None:
            result.add_error(
                field="config",
                message="Either config or config_dict must be provided",
                error_type="missing_input",
            )
            return result

        if config is not None:
            result.merge(self.validate_document(config.to_document()))
            if result.is_valid:
                result.config = config
            return result

        try:
            document = normalize_document(config_dict)
        except TypeError as e:
            result.add_error(field="config", message=str(e), error_type="parse_error")
            return result

        model = SCHEMA_REGISTRY.get(document["version"])
        if model is None:
            result.add_error(
                field="version",
                message=f"Unsupported catalog schema version '{document['version']}'. "
                        f"Supported versions: {sorted(SCHEMA_REGISTRY)}",
                error_type="unsupported_version",
            )
            return result

        semantic_result = self.validate_document(document)
        result.merge(semantic_result)

        reported_types = {error.error_type for error in semantic_result.errors}
        try:
            parsed = model.model_validate(document)
        except PydanticValidationError as e:
            # Extract field-specific errors from Pydantic validation
            for error in e.errors():
                # Invariants already reported above with their exact field path
                if error["type"] in INVARIANT_ERROR_TYPES & reported_types:
                    continue
                field_path = ".".join(str(loc) for loc in error["loc"]) or "catalog"
                result.add_error(
                    field=field_path,
                    message=error["msg"],
                    error_type="schema_violation",
                )
            return result
        except Exception as e:
            result.add_error(
                field="config",
                message=f"Failed to parse catalog: {str(e)}",
                error_type="parse_error",
            )
            return result

        if result.is_valid:
            result.config = parsed
        else:
            logger.debug(f"Catalog validation found {len(result.errors)} error(s)")
        return result

    def validate_document(self, document: Dict[str, Any]) -> ValidationResult:
        """
        Run the semantic checks over a raw catalog document.

        Malformed parts are skipped here; schema validation reports them.

        Args:
            document: Catalog document with camelCase keys.

        Returns:
            ValidationResult containing validation status and any errors.
        """
        result = ValidationResult()
        clouds = document.get("clouds")
        if not isinstance(clouds, list):
            return result

        result.merge(self.validate_clouds(clouds))
        for i, cloud in enumerate(clouds):
            if not isinstance(cloud, dict):
                continue
            instance_types = cloud.get("instanceTypes")
            if isinstance(instance_types, list):
                result.merge(
                    self.validate_instance_types(instance_types, prefix=f"clouds.{i}")
                )
        return result

    def validate_clouds(self, clouds: List[Any]) -> ValidationResult:
        """
        Validate that no two clouds share a Keystone hostname.

        Hostnames are compared case-insensitively. Missing or malformed
        hostnames are left to schema validation.

        Args:
            clouds: Raw cloud entries.

        Returns:
            ValidationResult containing validation status and any errors.
        """
        result = ValidationResult()

        seen_hostnames = {}
        for i, cloud in enumerate(clouds):
            if not isinstance(cloud, dict):
                continue
            hostname = cloud.get("keystoneHostname")
            if not isinstance(hostname, str) or not hostname.strip():
                continue

            key = normalize_hostname(hostname)
            if key in seen_hostnames:
                result.add_error(
                    field=f"clouds.{i}.keystoneHostname",
                    message=f"Duplicate keystoneHostname: '{hostname}' "
                            f"(already used by clouds.{seen_hostnames[key]})",
                    error_type="duplicate_value",
                )
            else:
                seen_hostnames[key] = i

        return result

    def validate_instance_types(
        self,
        instance_types: List[Any],
        prefix: str = "",
    ) -> ValidationResult:
        """
        Validate the instance types of one cloud.

        This method validates:
        - At most one version per instance type is primary
        - restrictFlavorIds, when present, is not empty

        Args:
            instance_types: Raw instance type entries.
            prefix: Field path of the owning cloud.

        Returns:
            ValidationResult containing validation status and any errors.
        """
        result = ValidationResult()
        base = f"{prefix}.instanceTypes" if prefix else "instanceTypes"

        for i, instance_type in enumerate(instance_types):
            if not isinstance(instance_type, dict):
                continue
            versions = instance_type.get("versions")
            if not isinstance(versions, list):
                continue

            primaries = []
            for j, version in enumerate(versions):
                if not isinstance(version, dict):
                    continue
                if version.get("isPrimary") is True:
                    primaries.append(j)

                restrict = version.get("restrictFlavorIds")
                if isinstance(restrict, list) and not restrict:
                    result.add_error(
                        field=f"{base}.{i}.versions.{j}.restrictFlavorIds",
                        message="restrictFlavorIds must list at least one flavor id; "
                                "use null for no restriction",
                        error_type="invalid_value",
                    )

            if len(primaries) > 1:
                result.add_error(
                    field=f"{base}.{i}.versions",
                    message=f"Instance type '{instance_type.get('friendlyName')}' marks "
                            f"versions {primaries} as primary. At most one is allowed.",
                    error_type="multiple_primary",
                )

        return result

    def get_validation_errors_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Get a human-readable summary of validation errors.

        Args:
            result: The ValidationResult to summarize.

        Returns:
            A formatted string containing all validation errors.
        """
        if result.is_valid:
            return "Catalog is valid."

        lines = ["Catalog validation failed with the following errors:"]
        for error in result.errors:
            lines.append(f"  - {error.field}: {error.message}")

        return "\n".join(lines)

