#!/usr/bin/env python3
"""
Structured import payloads for the REDCap API

REDCap import calls take a JSON array in the 'data' form field. The field
sets below are the ones REDCap documents for each entity; defaults follow
REDCap's own API playground examples.
"""

import json
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Dict, Iterable, List


@dataclass
class Arm:
    arm_num: str
    name: str


@dataclass
class Dag:
    data_access_group_name: str
    # Empty unique name asks REDCap to create a new group
    unique_group_name: str = ''


@dataclass
class Event:
    event_name: str
    arm_num: str
    unique_event_name: str = ''
    day_offset: str = '0'
    offset_min: str = '0'
    offset_max: str = '0'


@dataclass
class ProjectSettings:
    project_title: str
    purpose: int = 0
    purpose_other: str = ''
    project_note: str = ''


@dataclass
class UserDagMapping:
    username: str
    redcap_data_access_group: str


@dataclass
class EventForms:
    unique_event_name: str
    form: List[str] = field(default_factory=list)


@dataclass
class InstrumentEventMapping:
    number: str
    event: List[EventForms] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        # REDCap nests each mapping under an 'arm' key
        return {'arm': asdict(self)}


@dataclass
class UserRole:
    unique_role_name: str
    role_label: str
    data_access_group: str = '1'
    data_export: str = '0'
    mobile_app: str = '0'
    mobile_app_download_data: str = '0'
    lock_records_all_forms: str = '0'
    lock_records: str = '0'
    lock_records_customization: str = '0'
    record_delete: str = '0'
    record_rename: str = '0'
    record_create: str = '1'
    api_import: str = '1'
    api_export: str = '1'
    api_modules: str = '1'
    data_quality_execute: str = '1'
    data_quality_create: str = '1'
    file_repository: str = '1'
    logging: str = '1'
    data_comparison_tool: str = '1'
    data_import_tool: str = '1'
    calendar: str = '1'
    stats_and_charts: str = '1'
    reports: str = '1'
    user_rights: str = '1'
    design: str = '1'


@dataclass
class User:
    username: str
    expiration: str = ''
    data_access_group: str = '1'
    data_export: str = '0'
    mobile_app: str = '0'
    mobile_app_download_data: str = '0'
    lock_record_multiform: str = '0'
    lock_record: str = '0'
    lock_record_customize: str = '0'
    record_delete: str = '0'
    record_rename: str = '0'
    record_create: str = '1'
    api_import: str = '1'
    api_export: str = '1'
    api_modules: str = '1'
    data_quality_execute: str = '1'
    data_quality_design: str = '1'
    file_repository: str = '1'
    data_logging: str = '1'
    data_comparison_tool: str = '1'
    data_import_tool: str = '1'
    calendar: str = '1'
    graphical: str = '1'
    reports: str = '1'
    user_rights: str = '1'
    design: str = '1'


def _to_dict(item) -> Dict[str, Any]:
    if hasattr(item, 'to_dict'):
        return item.to_dict()
    if is_dataclass(item):
        return asdict(item)
    if isinstance(item, dict):
        return item
    raise TypeError(f"Cannot serialize {type(item).__name__} as a REDCap import item")


def serialize_payload(items: Iterable[Any]) -> str:
    """
    Serialize import items into the JSON array REDCap expects in 'data'

    Args:
        items: Payload dataclasses or plain dicts (records are free-form)

    Returns:
        Compact JSON string
    """
    return json.dumps([_to_dict(item) for item in items], separators=(',', ':'))
