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
"""Read-only catalog of OpenStack clouds, their images and flavor groups."""

from exosphere.cloud_catalog.cloud_catalog_config import (
    Cloud,
    CloudCatalog,
    FlavorGroup,
    ImageExcludeFilter,
    ImageFilter,
    ImageVisibility,
    InstanceType,
    NameImageFilter,
    UuidImageFilter,
    Version,
)
from exosphere.cloud_catalog.cloud_catalog_loader import (
    CatalogFileNotFoundError,
    CatalogValidationError,
    dump,
    get_default_catalog,
    load,
    load_file,
)
from exosphere.cloud_catalog.cloud_catalog_utils import (
    CatalogNotFoundError,
    CloudCatalogError,
    CloudNotFoundError,
    FlavorGroupNotFoundError,
    InstanceTypeNotFoundError,
    UserAppProxyNotFoundError,
    VersionNotFoundError,
    compatible_versions,
    exclude_image,
    excluded_images,
    filter_images,
    find_cloud_by_hostname,
    find_instance_type,
    group_flavors,
    image_matches_filter,
    is_featured_image,
    is_flavor_compatible,
    list_clouds,
    list_instance_types,
    match_flavor_group,
    primary_version,
    user_app_proxy,
)

__all__ = [
    "Cloud",
    "CloudCatalog",
    "FlavorGroup",
    "ImageExcludeFilter",
    "ImageFilter",
    "ImageVisibility",
    "InstanceType",
    "NameImageFilter",
    "UuidImageFilter",
    "Version",
    "CatalogFileNotFoundError",
    "CatalogValidationError",
    "dump",
    "get_default_catalog",
    "load",
    "load_file",
    "CatalogNotFoundError",
    "CloudCatalogError",
    "CloudNotFoundError",
    "FlavorGroupNotFoundError",
    "InstanceTypeNotFoundError",
    "UserAppProxyNotFoundError",
    "VersionNotFoundError",
    "compatible_versions",
    "exclude_image",
    "excluded_images",
    "filter_images",
    "find_cloud_by_hostname",
    "find_instance_type",
    "group_flavors",
    "image_matches_filter",
    "is_featured_image",
    "is_flavor_compatible",
    "list_clouds",
    "list_instance_types",
    "match_flavor_group",
    "primary_version",
    "user_app_proxy",
]
