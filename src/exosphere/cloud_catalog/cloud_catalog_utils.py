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
Query functions for a loaded cloud catalog.

Every function here is a pure lookup over the immutable models from
cloud_catalog_config. Lookups that can miss raise a subclass of
CatalogNotFoundError; callers decide on a fallback.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from exosphere.cloud_catalog.cloud_catalog_config import (
    Cloud,
    CloudCatalog,
    FlavorGroup,
    ImageFilter,
    InstanceType,
    UuidImageFilter,
    Version,
    normalize_hostname,
)

logger = logging.getLogger(__name__)


class CloudCatalogError(Exception):
    """Base exception for cloud catalog operations."""

    pass


class CatalogNotFoundError(CloudCatalogError):
    """Exception raised when a queried key does not exist in the catalog."""

    pass


class CloudNotFoundError(CatalogNotFoundError):
    """Exception raised when no cloud has the requested Keystone hostname."""

    pass


class InstanceTypeNotFoundError(CatalogNotFoundError):
    """Exception raised when a cloud has no instance type with the requested name."""

    pass


class VersionNotFoundError(CatalogNotFoundError):
    """Exception raised when an instance type has no suitable version."""

    pass


class FlavorGroupNotFoundError(CatalogNotFoundError):
    """Exception raised when no flavor group matches a flavor name."""

    pass


class UserAppProxyNotFoundError(CatalogNotFoundError):
    """Exception raised when a cloud has no application proxy configured."""

    pass


def list_clouds(catalog: CloudCatalog) -> Tuple[Cloud, ...]:
    """Return the clouds of a catalog in declaration order."""
    return catalog.clouds


def find_cloud_by_hostname(catalog: CloudCatalog, hostname: str) -> Cloud:
    """
    Look up a cloud by its Keystone hostname.

    Hostnames are compared case-insensitively, ignoring surrounding
    whitespace and a trailing dot.

    Args:
        catalog: The loaded catalog.
        hostname: Keystone hostname to look up.

    Returns:
        The matching Cloud.

    Raises:
        CloudNotFoundError: If no cloud has that hostname.
    """
    wanted = normalize_hostname(hostname)
    for cloud in catalog.clouds:
        if normalize_hostname(cloud.keystone_hostname) == wanted:
            return cloud
    logger.debug(f"No cloud with keystoneHostname '{hostname}'")
    raise CloudNotFoundError(f"Cloud with keystone hostname '{hostname}' not found")


def list_instance_types(cloud: Cloud) -> Tuple[InstanceType, ...]:
    """Return the instance types of a cloud in display order."""
    return cloud.instance_types


def find_instance_type(cloud: Cloud, friendly_name: str) -> InstanceType:
    """
    Look up an instance type of a cloud by its friendly name.

    Raises:
        InstanceTypeNotFoundError: If the cloud has no such instance type.
    """
    for instance_type in cloud.instance_types:
        if instance_type.friendly_name == friendly_name:
            return instance_type
    raise InstanceTypeNotFoundError(
        f"Instance type '{friendly_name}' not found on cloud '{cloud.keystone_hostname}'"
    )


def primary_version(
    instance_type: InstanceType,
    fallback_to_first: bool = False,
) -> Version:
    """
    Return the default version of an instance type.

    Args:
        instance_type: The instance type to inspect.
        fallback_to_first: When no version is marked primary, return the
            first version instead of raising.

    Returns:
        The version marked primary, or the first version when falling back.

    Raises:
        VersionNotFoundError: If there is no primary version and no fallback
            applies, or the instance type has no versions at all.
    """
    for version in instance_type.versions:
        if version.is_primary:
            return version
    if fallback_to_first and instance_type.versions:
        return instance_type.versions[0]
    raise VersionNotFoundError(
        f"Instance type '{instance_type.friendly_name}' has no primary version"
    )


def is_flavor_compatible(version: Version, flavor_id: str) -> bool:
    """
    Check whether the image of a version can boot on a flavor.

    A version without restrictFlavorIds is compatible with every flavor.
    """
    if not version.is_restricted:
        return True
    return flavor_id in version.restrict_flavor_ids


def compatible_versions(instance_type: InstanceType, flavor_id: str) -> List[Version]:
    """Return the versions of an instance type usable with a flavor, in display order."""
    return [v for v in instance_type.versions if is_flavor_compatible(v, flavor_id)]


def match_flavor_group(cloud: Cloud, flavor_name: str) -> FlavorGroup:
    """
    Find the display group for a flavor.

    Groups are evaluated in declaration order and the first one whose
    matchOn pattern matches wins.

    Raises:
        FlavorGroupNotFoundError: If no group matches the flavor name.
    """
    for group in cloud.flavor_groups:
        if group.matches(flavor_name):
            return group
    raise FlavorGroupNotFoundError(
        f"No flavor group on cloud '{cloud.keystone_hostname}' matches '{flavor_name}'"
    )


def group_flavors(
    cloud: Cloud,
    flavor_names: Iterable[str],
) -> List[Tuple[Optional[FlavorGroup], List[str]]]:
    """
    Bucket flavor names by their display group.

    Args:
        cloud: The cloud whose flavor groups apply.
        flavor_names: Flavor names, typically in the order the cloud lists them.

    Returns:
        (group, names) pairs in group declaration order, followed by a
        (None, names) pair for names no group matches. Empty buckets are
        omitted and names keep their input order.
    """
    buckets = {i: [] for i in range(len(cloud.flavor_groups))}
    ungrouped = []
    for name in flavor_names:
        for i, group in enumerate(cloud.flavor_groups):
            if group.matches(name):
                buckets[i].append(name)
                break
        else:
            ungrouped.append(name)

    grouped = [
        (group, buckets[i])
        for i, group in enumerate(cloud.flavor_groups)
        if buckets[i]
    ]
    if ungrouped:
        grouped.append((None, ungrouped))
    return grouped


def exclude_image(
    cloud: Cloud,
    image_metadata: Mapping[str, Any],
    exclude_when_key_missing: bool = False,
) -> bool:
    """
    Check whether an image should be hidden from image listings.

    An image is excluded when the cloud has an imageExcludeFilter and the
    image metadata carries the filter key with a value other than the
    filter value.

    Args:
        cloud: The cloud the image belongs to.
        image_metadata: Image properties as returned by the image service.
        exclude_when_key_missing: Treat images lacking the filter key as
            excluded. Off by default.

    Returns:
        True if the image should be hidden, False otherwise.
    """
    image_filter = cloud.image_exclude_filter
    if image_filter is None:
        return False
    if image_filter.filter_key not in image_metadata:
        return exclude_when_key_missing
    return image_metadata[image_filter.filter_key] != image_filter.filter_value


def filter_images(
    cloud: Cloud,
    images: Iterable[Mapping[str, Any]],
    exclude_when_key_missing: bool = False,
) -> List[Mapping[str, Any]]:
    """Return the images that are not excluded, keeping their order."""
    return [
        image
        for image in images
        if not exclude_image(cloud, image, exclude_when_key_missing)
    ]


def excluded_images(
    cloud: Cloud,
    images: Iterable[Mapping[str, Any]],
    exclude_when_key_missing: bool = False,
) -> List[Mapping[str, Any]]:
    """Return the images that are excluded, keeping their order."""
    return [
        image
        for image in images
        if exclude_image(cloud, image, exclude_when_key_missing)
    ]


def image_matches_filter(
    version_or_filter: Union[Version, ImageFilter],
    image: Mapping[str, Any],
) -> bool:
    """
    Check whether an image satisfies a version's imageFilters.

    The uuid variant compares the image id; the name variant compares
    the image name and visibility.
    """
    if isinstance(version_or_filter, Version):
        image_filter = version_or_filter.image_filters
    else:
        image_filter = version_or_filter

    if isinstance(image_filter, UuidImageFilter):
        return image.get("id") == image_filter.uuid
    return (
        image.get("name") == image_filter.name
        and image.get("visibility") == image_filter.visibility.value
    )


def is_featured_image(cloud: Cloud, image_name: str) -> bool:
    """Check whether an image name carries the cloud's featured prefix."""
    prefix = cloud.featured_image_name_prefix
    return bool(prefix) and image_name.startswith(prefix)


def user_app_proxy(cloud: Cloud) -> str:
    """
    Return the hostname of the cloud's application proxy.

    Raises:
        UserAppProxyNotFoundError: If the cloud has no proxy configured.
    """
    if cloud.user_app_proxy is None:
        raise UserAppProxyNotFoundError(
            f"Cloud '{cloud.keystone_hostname}' has no user application proxy"
        )
    return cloud.user_app_proxy
