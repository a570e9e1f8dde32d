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
"""Registry for cloud catalog schema versions."""

from typing import Any, Dict, Type

from pydantic import BaseModel

from exosphere.cloud_catalog.cloud_catalog_config import CATALOG_SCHEMA_VERSION, CloudCatalog

# Direct version-to-model mapping
SCHEMA_REGISTRY: Dict[str, Type[BaseModel]] = {
    "1.0": CloudCatalog,
}


def normalize_document(document: Any) -> Dict[str, Any]:
    """
    Bring a raw catalog document into its canonical top-level shape.

    A bare list is taken as the list of clouds, and a missing version
    defaults to the current schema version. YAML may read the version
    as a float, so it is always converted to a string.

    Raises:
        TypeError: If the document is neither a mapping nor a list.
    """
    if isinstance(document, list):
        document = {"clouds": document}
    if not isinstance(document, dict):
        raise TypeError(
            f"Catalog document must be a mapping or a list of clouds, "
            f"got {type(document).__name__}"
        )
    document = dict(document)
    document["version"] = str(document.get("version", CATALOG_SCHEMA_VERSION))
    return document
