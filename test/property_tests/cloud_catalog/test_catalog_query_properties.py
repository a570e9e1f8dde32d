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
Property-based tests for the cloud catalog query functions.

Properties tested:
- Property 5: Hostname lookup is total and injective
- Property 6: Primary version selection
- Property 7: Flavor compatibility
- Property 8: Flavor group ordering (first match wins)
- Property 9: Image exclusion
- Property 10: Image filter matching
"""

import string
from typing import Any, Dict, List

import pytest
from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st

from exosphere.cloud_catalog.cloud_catalog_config import (
    Cloud,
    InstanceType,
    NameImageFilter,
    UuidImageFilter,
    Version,
)
from exosphere.cloud_catalog.cloud_catalog_loader import load
from exosphere.cloud_catalog.cloud_catalog_utils import (
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
from test.property_tests.cloud_catalog.strategies import (
    catalog_documents,
    flavor_group_documents,
    flavor_ids,
    instance_type_documents,
    valid_hostnames,
)


def _cloud(**fields) -> Cloud:
    document = {"keystoneHostname": "keystone.example.org", "friendlyName": "Example"}
    document.update(fields)
    return Cloud(**document)


def _version(**fields) -> Version:
    document = {
        "friendlyName": "20.04",
        "imageFilters": {"uuid": "f0d43d1c-c022-4079-812c-3dd3dbee45cf"},
    }
    document.update(fields)
    return Version(**document)


flavor_names = st.text(alphabet=string.ascii_lowercase + string.digits + ".", min_size=1, max_size=12)


# =============================================================================
# Property 5: Hostname lookup is total and injective
# =============================================================================


class TestHostnameLookup:
    """
    Property 5: Hostname lookup is total and injective

    *For any* loaded catalog, looking up every keystoneHostname SHALL return
    the cloud declaring it, and distinct hostnames SHALL resolve to distinct
    clouds.
    """

    @given(document=catalog_documents())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_every_hostname_resolves_to_its_cloud(self, document: Dict[str, Any]):
        catalog = load(document)

        resolved = [find_cloud_by_hostname(catalog, c.keystone_hostname) for c in catalog.clouds]

        assert all(r is c for r, c in zip(resolved, catalog.clouds))
        assert len({id(r) for r in resolved}) == len(catalog.clouds)

    @given(document=catalog_documents())
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    def test_lookup_ignores_case_and_whitespace(self, document: Dict[str, Any]):
        catalog = load(document)
        assume(catalog.clouds)
        cloud = catalog.clouds[-1]

        assert find_cloud_by_hostname(catalog, f"  {cloud.keystone_hostname.upper()}. ") is cloud

    @given(document=catalog_documents(), hostname=valid_hostnames())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_unknown_hostname_not_found(self, document: Dict[str, Any], hostname: str):
        assume(all(c["keystoneHostname"].lower() != hostname.lower() for c in document["clouds"]))
        catalog = load(document)

        with pytest.raises(CloudNotFoundError):
            find_cloud_by_hostname(catalog, hostname)

    @given(document=catalog_documents())
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    def test_listing_preserves_declaration_order(self, document: Dict[str, Any]):
        catalog = load(document)

        assert [c.keystone_hostname for c in list_clouds(catalog)] == [
            c["keystoneHostname"] for c in document["clouds"]
        ]
        for cloud, cloud_document in zip(catalog.clouds, document["clouds"]):
            assert [t.friendly_name for t in list_instance_types(cloud)] == [
                t["friendlyName"] for t in cloud_document["instanceTypes"]
            ]


# =============================================================================
# Property 6: Primary version selection
# =============================================================================


class TestPrimaryVersion:
    """
    Property 6: Primary version selection

    primary_version SHALL return the single version marked primary; without
    one it SHALL raise unless the caller asks for the first version instead.
    """

    @given(document=instance_type_documents())
    @settings(max_examples=100)
    def test_primary_version_selection(self, document: Dict[str, Any]):
        instance_type = InstanceType(**document)
        marked = [v for v in instance_type.versions if v.is_primary]

        if marked:
            assert primary_version(instance_type) is marked[0]
            assert primary_version(instance_type, fallback_to_first=True) is marked[0]
        else:
            with pytest.raises(VersionNotFoundError):
                primary_version(instance_type)
            if instance_type.versions:
                assert primary_version(instance_type, fallback_to_first=True) is instance_type.versions[0]
            else:
                with pytest.raises(VersionNotFoundError):
                    primary_version(instance_type, fallback_to_first=True)

    def test_find_instance_type(self):
        ubuntu = {"friendlyName": "Ubuntu"}
        cloud = _cloud(instanceTypes=[ubuntu, {"friendlyName": "Red Hat-like"}])

        assert find_instance_type(cloud, "Ubuntu") is cloud.instance_types[0]
        with pytest.raises(InstanceTypeNotFoundError):
            find_instance_type(cloud, "Debian")


# =============================================================================
# Property 7: Flavor compatibility
# =============================================================================


class TestFlavorCompatibility:
    """
    Property 7: Flavor compatibility

    An unrestricted version SHALL be compatible with every flavor; a
    restricted one exactly with the flavors it lists.
    """

    @given(flavor_id=st.text(max_size=40))
    @settings(max_examples=100)
    def test_unrestricted_version_accepts_any_flavor(self, flavor_id: str):
        assert is_flavor_compatible(_version(restrictFlavorIds=None), flavor_id)

    @given(
        restrict=st.lists(flavor_ids(), min_size=1, max_size=10, unique=True),
        flavor_id=flavor_ids(),
    )
    @settings(max_examples=100)
    def test_restricted_version_accepts_only_listed_flavors(self, restrict: List[str], flavor_id: str):
        version = _version(restrictFlavorIds=restrict)

        assert is_flavor_compatible(version, flavor_id) == (flavor_id in restrict)
        assert all(is_flavor_compatible(version, listed) for listed in restrict)

    @given(document=instance_type_documents(), flavor_id=flavor_ids())
    @settings(max_examples=100)
    def test_compatible_versions_keep_order(self, document: Dict[str, Any], flavor_id: str):
        instance_type = InstanceType(**document)

        expected = [v for v in instance_type.versions if is_flavor_compatible(v, flavor_id)]

        assert compatible_versions(instance_type, flavor_id) == expected


# =============================================================================
# Property 8: Flavor group ordering (first match wins)
# =============================================================================


class TestFlavorGroupOrdering:
    """
    Property 8: Flavor group ordering

    match_flavor_group SHALL return the first group in declaration order
    whose pattern matches, even when a later group matches more closely.
    """

    @given(
        prefixes=st.lists(
            st.text(alphabet="abm3.", min_size=1, max_size=3), min_size=1, max_size=5
        ),
        flavor_name=st.text(alphabet="abm3.x", min_size=1, max_size=8),
        data=st.data(),
    )
    @settings(max_examples=200)
    def test_first_matching_group_wins(self, prefixes: List[str], flavor_name: str, data):
        groups = [data.draw(flavor_group_documents(prefix=p)) for p in prefixes]
        cloud = _cloud(flavorGroups=groups)

        expected = next((i for i, p in enumerate(prefixes) if flavor_name.startswith(p)), None)

        if expected is None:
            with pytest.raises(FlavorGroupNotFoundError):
                match_flavor_group(cloud, flavor_name)
        else:
            assert match_flavor_group(cloud, flavor_name) is cloud.flavor_groups[expected]

    def test_earlier_broad_group_shadows_later_specific_group(self):
        cloud = _cloud(flavorGroups=[
            {"matchOn": "m3\\..*", "title": "General-purpose"},
            {"matchOn": "m3\\.large", "title": "Large"},
        ])

        assert match_flavor_group(cloud, "m3.large").title == "General-purpose"

    @given(
        prefixes=st.lists(st.text(alphabet="abm3", min_size=1, max_size=2), max_size=4),
        names=st.lists(flavor_names, max_size=12),
        data=st.data(),
    )
    @settings(max_examples=100)
    def test_group_flavors_partitions_names(self, prefixes: List[str], names: List[str], data):
        groups = [data.draw(flavor_group_documents(prefix=p)) for p in prefixes]
        cloud = _cloud(flavorGroups=groups)

        grouped = group_flavors(cloud, names)

        flattened = [name for _, bucket in grouped for name in bucket]
        assert sorted(flattened) == sorted(names)
        for group, bucket in grouped:
            assert bucket
            for name in bucket:
                if group is None:
                    with pytest.raises(FlavorGroupNotFoundError):
                        match_flavor_group(cloud, name)
                else:
                    assert match_flavor_group(cloud, name) is group
            # Input order is kept inside each bucket
            positions = [names.index(n) for n in dict.fromkeys(bucket)]
            assert positions == sorted(positions)
        # Ungrouped names come last
        assert all(group is not None for group, _ in grouped[:-1])


# =============================================================================
# Property 9: Image exclusion
# =============================================================================


class TestImageExclusion:
    """
    Property 9: Image exclusion

    An image SHALL be excluded iff the cloud has an exclude filter and the
    image carries the filter key with a different value. A missing key is
    not excluded unless the caller opts in.
    """

    @given(
        filter_value=st.sampled_from(["true", "false"]),
        metadata=st.dictionaries(
            st.sampled_from(["atmo_image_include", "os_distro", "hw_disk_bus"]),
            st.sampled_from(["true", "false", "ubuntu", ""]),
        ),
        exclude_when_key_missing=st.booleans(),
    )
    @settings(max_examples=200)
    def test_exclusion_predicate(self, filter_value, metadata, exclude_when_key_missing):
        cloud = _cloud(imageExcludeFilter={"filterKey": "atmo_image_include", "filterValue": filter_value})

        result = exclude_image(cloud, metadata, exclude_when_key_missing=exclude_when_key_missing)

        if "atmo_image_include" in metadata:
            assert result == (metadata["atmo_image_include"] != filter_value)
        else:
            assert result == exclude_when_key_missing

    @given(metadata=st.dictionaries(st.text(max_size=10), st.text(max_size=10)))
    @settings(max_examples=100)
    def test_no_filter_excludes_nothing(self, metadata):
        cloud = _cloud()

        assert not exclude_image(cloud, metadata)
        assert not exclude_image(cloud, metadata, exclude_when_key_missing=True)

    @given(
        images=st.lists(
            st.dictionaries(
                st.sampled_from(["atmo_image_include", "name"]),
                st.sampled_from(["true", "false", "x"]),
            ),
            max_size=10,
        )
    )
    @settings(max_examples=100)
    def test_filter_and_excluded_partition_images(self, images):
        cloud = _cloud(imageExcludeFilter={"filterKey": "atmo_image_include", "filterValue": "true"})

        kept = filter_images(cloud, images)
        dropped = excluded_images(cloud, images)

        assert len(kept) + len(dropped) == len(images)
        assert all(not exclude_image(cloud, image) for image in kept)
        assert all(exclude_image(cloud, image) for image in dropped)


# =============================================================================
# Property 10: Image filter matching
# =============================================================================


class TestImageFilterMatching:
    """
    Property 10: Image filter matching

    A uuid filter SHALL match exactly the image with that id; a name filter
    SHALL match images with the same name and visibility.
    """

    @given(image_id=st.uuids(), other_id=st.uuids())
    @settings(max_examples=100)
    def test_uuid_filter(self, image_id, other_id):
        assume(image_id != other_id)
        version = _version(imageFilters={"uuid": str(image_id)})

        assert image_matches_filter(version, {"id": str(image_id), "name": "anything"})
        assert not image_matches_filter(version, {"id": str(other_id)})
        assert isinstance(version.image_filters, UuidImageFilter)

    @given(
        name=st.text(alphabet=string.ascii_letters + "-", min_size=1, max_size=20),
        visibility=st.sampled_from(["public", "private", "shared", "community"]),
        image_visibility=st.sampled_from(["public", "private", "shared", "community"]),
    )
    @settings(max_examples=100)
    def test_name_filter(self, name, visibility, image_visibility):
        image_filter = NameImageFilter(name=name, visibility=visibility)
        image = {"id": "f0d43d1c-c022-4079-812c-3dd3dbee45cf", "name": name, "visibility": image_visibility}

        assert image_matches_filter(image_filter, image) == (visibility == image_visibility)
        assert not image_matches_filter(image_filter, dict(image, name=name + "-old"))


class TestCloudMetadata:
    """Featured images and the application proxy."""

    @pytest.mark.parametrize(
        "prefix, image_name, expected",
        [
            ("Featured-", "Featured-Ubuntu20", True),
            ("Featured-", "Ubuntu20", False),
            ("JS-API-Featured", "JS-API-Featured-CentOS7-Latest", True),
            (None, "Featured-Ubuntu20", False),
        ],
    )
    def test_is_featured_image(self, prefix, image_name, expected):
        cloud = _cloud(featuredImageNamePrefix=prefix)

        assert is_featured_image(cloud, image_name) is expected

    def test_user_app_proxy(self):
        assert user_app_proxy(_cloud(userAppProxy="proxy-js2-iu.exosphere.app")) == "proxy-js2-iu.exosphere.app"
        with pytest.raises(UserAppProxyNotFoundError):
            user_app_proxy(_cloud())

    def test_display_name(self):
        assert _cloud(friendlySubName="IU").display_name == "Example (IU)"
        assert _cloud().display_name == "Example"

    def test_models_are_immutable(self):
        cloud = _cloud()

        with pytest.raises(Exception):
            cloud.friendly_name = "Changed"
