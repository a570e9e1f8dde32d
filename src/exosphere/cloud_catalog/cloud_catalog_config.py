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
Pydantic models for the cloud catalog.

This module defines the data models describing the OpenStack clouds a
dashboard knows about: their Keystone endpoints, the operating-system
images offered for new instances, and how flavors are grouped for display.
All models are immutable once validated.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator, model_validator
from pydantic_core import PydanticCustomError


# Regex patterns for validation
HOSTNAME_PATTERN = re.compile(
    r"^(?=.{1,253}\Z)[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*\Z"
)
UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\Z"
)

CATALOG_SCHEMA_VERSION = "1.0"

# Error types raised for catalog invariants, shared with the validator
DUPLICATE_VALUE = "duplicate_value"
MULTIPLE_PRIMARY = "multiple_primary"
INVALID_VALUE = "invalid_value"
INVARIANT_ERROR_TYPES = frozenset({DUPLICATE_VALUE, MULTIPLE_PRIMARY, INVALID_VALUE})

_MODEL_CONFIG = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


def _require_text(value: str, what: str) -> str:
    if not value.strip():
        raise ValueError(f"{what} must not be empty or whitespace")
    return value


class ImageVisibility(str, Enum):
    """OpenStack image visibility values."""

    PUBLIC = "public"
    PRIVATE = "private"
    SHARED = "shared"
    COMMUNITY = "community"


class UuidImageFilter(BaseModel):
    """Selects exactly one image by its UUID."""

    model_config = _MODEL_CONFIG

    uuid: str = Field(
        ...,
        description="UUID of the image",
    )

    @field_validator("uuid")
    @classmethod
    def validate_uuid(cls, v: str) -> str:
        """Validate that uuid is a canonical UUID string."""
        if not UUID_PATTERN.match(v):
            raise ValueError(
                f"Invalid image UUID: '{v}'. "
                "Expected format: xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx"
            )
        return v


class NameImageFilter(BaseModel):
    """Selects images by exact name and visibility."""

    model_config = _MODEL_CONFIG

    name: str = Field(
        ...,
        min_length=1,
        description="Exact image name",
    )
    visibility: ImageVisibility = Field(
        ...,
        description="Required image visibility",
    )


# Exactly one of the two shapes; extra="forbid" rejects objects carrying both.
ImageFilter = Union[UuidImageFilter, NameImageFilter]


class ImageExcludeFilter(BaseModel):
    """Metadata key/value used to hide images when listing them."""

    model_config = _MODEL_CONFIG

    filter_key: str = Field(
        ...,
        alias="filterKey",
        min_length=1,
        description="Image metadata key to inspect",
    )
    filter_value: str = Field(
        ...,
        alias="filterValue",
        description="Value the key must carry for the image to be shown",
    )


class Version(BaseModel):
    """One selectable operating-system image."""

    model_config = _MODEL_CONFIG

    friendly_name: str = Field(
        ...,
        alias="friendlyName",
        min_length=1,
        description="Name shown to users, e.g. '20.04 (latest)'",
    )
    is_primary: StrictBool = Field(
        default=False,
        alias="isPrimary",
        description="Whether this version is the default selection",
    )
    image_filters: ImageFilter = Field(
        ...,
        alias="imageFilters",
        description="Predicate resolving this version to an image",
    )
    restrict_flavor_ids: Optional[Tuple[str, ...]] = Field(
        default=None,
        alias="restrictFlavorIds",
        description="Flavor ids the image works with; null means any flavor",
    )

    @field_validator("friendly_name")
    @classmethod
    def validate_friendly_name(cls, v: str) -> str:
        return _require_text(v, "friendlyName")

    @field_validator("restrict_flavor_ids")
    @classmethod
    def validate_restrict_flavor_ids(
        cls, v: Optional[Tuple[str, ...]]
    ) -> Optional[Tuple[str, ...]]:
        """Validate that a restriction, when given, names at least one flavor."""
        if v is not None and len(v) == 0:
            raise PydanticCustomError(
                INVALID_VALUE,
                "restrictFlavorIds must list at least one flavor id; "
                "use null for no restriction",
            )
        return v

    @property
    def is_restricted(self) -> bool:
        return self.restrict_flavor_ids is not None


class InstanceType(BaseModel):
    """An operating-system family, e.g. Ubuntu."""

    model_config = _MODEL_CONFIG

    friendly_name: str = Field(
        ...,
        alias="friendlyName",
        min_length=1,
        description="Name of the OS family",
    )
    description: str = Field(
        default="",
        description="Markdown-like text, paragraphs separated by blank lines",
    )
    logo: str = Field(
        default="",
        description="Asset path of the logo image",
    )
    versions: Tuple[Version, ...] = Field(
        default=(),
        description="Selectable versions in display order",
    )

    @field_validator("friendly_name")
    @classmethod
    def validate_friendly_name(cls, v: str) -> str:
        return _require_text(v, "friendlyName")

    @model_validator(mode="after")
    def validate_single_primary(self) -> "InstanceType":
        """
        Validate that at most one version is marked primary.

        The primary version is the default selection, so two of them
        would make the default ambiguous.
        """
        primaries = [v.friendly_name for v in self.versions if v.is_primary]
        if len(primaries) > 1:
            raise PydanticCustomError(
                MULTIPLE_PRIMARY,
                "Instance type '{name}' has {count} primary versions: {names}. "
                "At most one is allowed.",
                {"name": self.friendly_name, "count": len(primaries), "names": str(primaries)},
            )
        return self

    def description_paragraphs(self) -> List[str]:
        """Split the description into its non-empty paragraphs."""
        return [p.strip() for p in re.split(r"\n\s*\n", self.description) if p.strip()]


class FlavorGroup(BaseModel):
    """Display grouping rule for flavors."""

    model_config = _MODEL_CONFIG

    match_on: str = Field(
        ...,
        alias="matchOn",
        min_length=1,
        description="Regular expression matched against flavor names",
    )
    title: str = Field(
        ...,
        min_length=1,
        description="Heading shown above the group",
    )
    description: Optional[str] = Field(
        default=None,
        description="Optional text shown under the heading",
    )

    @field_validator("match_on")
    @classmethod
    def validate_match_on(cls, v: str) -> str:
        """Validate that matchOn compiles as a regular expression."""
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid matchOn pattern '{v}': {e}")
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _require_text(v, "title")

    def matches(self, flavor_name: str) -> bool:
        return re.search(self.match_on, flavor_name) is not None


class Cloud(BaseModel):
    """
    One OpenStack deployment known to the dashboard.

    The Keystone hostname identifies the cloud; everything else is
    presentation metadata.
    """

    model_config = _MODEL_CONFIG

    keystone_hostname: str = Field(
        ...,
        alias="keystoneHostname",
        min_length=1,
        description="Hostname of the Keystone identity endpoint",
    )
    friendly_name: str = Field(
        ...,
        alias="friendlyName",
        min_length=1,
        description="Name shown to users",
    )
    friendly_sub_name: Optional[str] = Field(
        default=None,
        alias="friendlySubName",
        description="Secondary name, e.g. the hosting site",
    )
    user_app_proxy: Optional[str] = Field(
        default=None,
        alias="userAppProxy",
        description="Hostname of the application proxy for this cloud",
    )
    image_exclude_filter: Optional[ImageExcludeFilter] = Field(
        default=None,
        alias="imageExcludeFilter",
        description="Metadata filter used to hide images",
    )
    featured_image_name_prefix: Optional[str] = Field(
        default=None,
        alias="featuredImageNamePrefix",
        description="Name prefix marking featured images",
    )
    instance_types: Tuple[InstanceType, ...] = Field(
        default=(),
        alias="instanceTypes",
        description="OS families in display order",
    )
    flavor_groups: Tuple[FlavorGroup, ...] = Field(
        default=(),
        alias="flavorGroups",
        description="Flavor grouping rules, first match wins",
    )

    @field_validator("keystone_hostname")
    @classmethod
    def validate_keystone_hostname(cls, v: str) -> str:
        """Validate that keystoneHostname is a DNS hostname."""
        if not HOSTNAME_PATTERN.match(v):
            raise ValueError(
                f"Invalid keystoneHostname: '{v}'. "
                "Expected a DNS hostname such as keystone.example.org"
            )
        return v

    @field_validator("user_app_proxy")
    @classmethod
    def validate_user_app_proxy(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not HOSTNAME_PATTERN.match(v):
            raise ValueError(
                f"Invalid userAppProxy: '{v}'. Expected a DNS hostname"
            )
        return v

    @field_validator("friendly_name")
    @classmethod
    def validate_friendly_name(cls, v: str) -> str:
        return _require_text(v, "friendlyName")

    @property
    def display_name(self) -> str:
        if self.friendly_sub_name:
            return f"{self.friendly_name} ({self.friendly_sub_name})"
        return self.friendly_name


class CloudCatalog(BaseModel):
    """
    The complete set of clouds known to the dashboard.

    Loaded once per process and never modified afterwards.
    """

    model_config = _MODEL_CONFIG

    version: str = Field(
        default=CATALOG_SCHEMA_VERSION,
        description="Catalog schema version",
    )
    clouds: Tuple[Cloud, ...] = Field(
        default=(),
        description="Clouds in declaration order",
    )

    @model_validator(mode="after")
    def validate_unique_hostnames(self) -> "CloudCatalog":
        """Validate that no two clouds share a Keystone hostname."""
        seen = set()
        for cloud in self.clouds:
            key = normalize_hostname(cloud.keystone_hostname)
            if key in seen:
                raise PydanticCustomError(
                    DUPLICATE_VALUE,
                    "Duplicate keystoneHostname: '{hostname}'",
                    {"hostname": cloud.keystone_hostname},
                )
            seen.add(key)
        return self

    def to_document(self) -> Dict[str, Any]:
        """
        Convert the catalog back to its document form.

        Returns:
            Dict with camelCase keys and explicit nulls, suitable for
            JSON or YAML serialization.
        """
        return self.model_dump(mode="json", by_alias=True)


# Utility functions for format validation (standalone validators)


def normalize_hostname(hostname: str) -> str:
    """Lower-case a hostname and strip surrounding whitespace and a trailing dot."""
    return hostname.strip().rstrip(".").lower()


def validate_hostname_format(hostname: str) -> bool:
    """
    Validate that a string is a DNS hostname.

    Args:
        hostname: The string to validate.

    Returns:
        True if the string matches the hostname pattern, False otherwise.
    """
    return bool(HOSTNAME_PATTERN.match(hostname))


def validate_uuid_format(value: str) -> bool:
    """
    Validate that a string is a canonical UUID.

    Args:
        value: The string to validate.

    Returns:
        True if the string matches the UUID pattern, False otherwise.
    """
    return bool(UUID_PATTERN.match(value))
