"""
urlquery.core.options - Typed entity and attribute options
===========================================================

Entity descriptions arrive as type-erased string maps (``{"force_filtering": "1"}``).
They are validated once, when the entity is loaded, into the pydantic models
below. Everything downstream works with typed fields only.
"""

from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AttributeOptions(BaseModel):
    """Per-attribute options controlling remote filtering, sorting and writes."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    filter_remote: Optional[bool] = Field(
        default=None,
        description="Force remote filtering on or off. Unset means dialect default.",
    )
    filter_locally: Optional[bool] = Field(
        default=None,
        description="Apply filters over this attribute after reading.",
    )
    filter_remote_url: Optional[str] = Field(
        default=None,
        description="Alternative endpoint used when filtering over this attribute. "
                    "[#value#] is replaced by the filter value.",
        json_schema_extra={"example": "orders/by-customer/[#value#]"},
    )
    filter_remote_url_param: Optional[str] = Field(
        default=None,
        description="URL parameter to put the filter value into.",
        json_schema_extra={"example": "q"},
    )
    filter_remote_prefix: Optional[str] = Field(
        default=None,
        description="Prefix prepended to the filter value.",
    )
    filter_remote_argument: Optional[str] = Field(
        default=None,
        description="GraphQL query argument receiving EQUALS filters over this attribute.",
    )
    sort_remote: Optional[bool] = None
    sort_locally: Optional[bool] = None
    sort_remote_url_param: Optional[str] = None
    odata_type: Optional[str] = Field(
        default=None,
        description="Remote EDM type hint, e.g. Edm.Guid or Edm.Int64.",
        json_schema_extra={"example": "Edm.DateTime"},
    )
    create_data_address: Optional[str] = None
    update_data_address: Optional[str] = None
    read_data_address: Optional[str] = None
    value_list_delimiter: str = ","


class EntityOptions(BaseModel):
    """Per-entity options controlling endpoints, envelopes, paging and writes."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    force_filtering: bool = False

    # ---------------- responses ----------------
    response_data_path: Optional[str] = Field(
        default=None,
        description="Slash-delimited path to the rows inside the response body.",
        json_schema_extra={"example": "data/items"},
    )
    uid_response_data_path: Optional[str] = None
    response_total_count_path: Optional[str] = None
    response_group_by_attribute_alias: Optional[str] = None
    response_group_use_only_first: bool = False

    # ---------------- requests ----------------
    request_offset_parameter: Optional[str] = None
    request_limit_parameter: Optional[str] = None
    request_url_replace_pattern: Optional[str] = None
    request_url_replace_with: str = ""
    uid_request_data_address: Optional[str] = Field(
        default=None,
        description="Endpoint used when the query filters over the UID.",
        json_schema_extra={"example": "Orders([#UID#])"},
    )

    # ---------------- writes ----------------
    create_request_data_address: Optional[str] = None
    create_request_data_path: Optional[str] = None
    update_request_data_address: Optional[str] = None
    update_request_data_path: Optional[str] = None
    update_request_method: Optional[str] = None
    delete_request_data_address: Optional[str] = None

    # ---------------- OData ----------------
    odata_inlinecount: Optional[bool] = Field(default=None, alias="odata_$inlinecount")
    odata_select: bool = True
    odata_batch: bool = False

    # ---------------- GraphQL ----------------
    graphql_type: Optional[str] = None
    graphql_read_query: Optional[str] = None
    graphql_create_mutation: Optional[str] = None
    graphql_update_mutation: Optional[str] = None
    graphql_delete_mutation: Optional[str] = None
    graphql_remote_pagination: Optional[bool] = None
    graphql_offset_argument: Optional[str] = None
    graphql_limit_argument: Optional[str] = None
    graphql_json_envelope: bool = False

    @field_validator("request_url_replace_pattern")
    @classmethod
    def _check_pattern(cls, value: Optional[str]) -> Optional[str]:
        if value:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"invalid regular expression: {e}") from e
        return value

    @field_validator("update_request_method")
    @classmethod
    def _upper_method(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value
