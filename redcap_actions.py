#!/usr/bin/env python3
"""
Table of REDCap API actions

Each entry says which content verb and action literal a call sends, which
key carries the response format (if any), which list parameter it takes and
the fixed parameters REDCap expects for it.
"""

from typing import Dict, NamedTuple, Optional, Tuple

from redcap_params import BuilderKind


class ActionSpec(NamedTuple):
    content: str
    action: Optional[str] = None
    # 'format', 'returnFormat', or None when the verb takes no format
    format_key: Optional[str] = 'format'
    list_kind: Optional[BuilderKind] = None
    # Default (key, value) params; callers may override the values
    fixed: Tuple[Tuple[str, object], ...] = ()
    multipart: bool = False


ACTIONS: Dict[str, ActionSpec] = {
    # Deletes
    'delete_arms': ActionSpec('arm', 'delete', list_kind=BuilderKind.ARMS),
    'delete_dags': ActionSpec('dag', 'delete', list_kind=BuilderKind.DAGS),
    'delete_events': ActionSpec('event', 'delete', list_kind=BuilderKind.EVENTS),
    'delete_file': ActionSpec('file', 'delete', format_key=None),
    'delete_records': ActionSpec('record', 'delete', format_key='returnFormat',
                                 list_kind=BuilderKind.RECORDS),
    'delete_user_roles': ActionSpec('userRole', 'delete', list_kind=BuilderKind.USER_ROLES),
    'delete_users': ActionSpec('user', 'delete', list_kind=BuilderKind.USERS),

    # Exports
    'export_arms': ActionSpec('arm'),
    'export_dags': ActionSpec('dag'),
    'export_events': ActionSpec('event', list_kind=BuilderKind.ARMS),
    'export_field_names': ActionSpec('exportFieldNames'),
    'export_file': ActionSpec('file', 'export', format_key=None),
    'export_instrument_event_maps': ActionSpec('formEventMapping'),
    'export_instrument_pdf': ActionSpec('pdf'),
    'export_instruments': ActionSpec('instrument'),
    'export_logging': ActionSpec('log', fixed=(('logtype', ''), ('user', ''), ('record', ''))),
    'export_metadata': ActionSpec('metadata'),
    'export_project_xml': ActionSpec('project_xml', format_key='returnFormat',
                                     fixed=(('returnMetadataOnly', False),
                                            ('exportSurveyFields', False),
                                            ('exportDataAccessGroups', False))),
    'export_project': ActionSpec('project'),
    'export_records': ActionSpec('record', fixed=(('type', 'flat'),)),
    'export_redcap_version': ActionSpec('version', format_key=None),
    'export_reports': ActionSpec('report'),
    'export_survey_link': ActionSpec('surveyLink'),
    'export_survey_participants': ActionSpec('participantList'),
    'export_survey_queue_link': ActionSpec('surveyQueueLink'),
    'export_survey_return_code': ActionSpec('surveyReturnCode'),
    'export_dag_maps': ActionSpec('userDagMapping'),
    'export_user_roles': ActionSpec('userRole'),
    'export_users': ActionSpec('user'),

    # Imports
    'import_arms': ActionSpec('arm', 'import', fixed=(('override', 0),)),
    'import_dags': ActionSpec('dag', 'import'),
    'import_events': ActionSpec('event', 'import', fixed=(('override', 0),)),
    'import_file': ActionSpec('file', 'import', format_key=None, multipart=True),
    'import_instrument_event_maps': ActionSpec('formEventMapping'),
    'import_project': ActionSpec('project'),
    'import_records': ActionSpec('record', fixed=(('type', 'flat'),)),
    'import_user_dag_maps': ActionSpec('userDagMapping', 'import'),
    'import_user_roles': ActionSpec('userRole'),
    'import_users': ActionSpec('user'),

    # Other
    'rename_record': ActionSpec('record', 'rename', format_key='returnFormat'),
    'switch_dag': ActionSpec('dag', 'switch'),
}


def merge_params(spec: ActionSpec, params: Dict[str, object]):
    """
    Fixed params first, then caller params in call order

    A caller value of None keeps the fixed default rather than dropping it.
    """
    merged = dict(spec.fixed)
    for key, value in params.items():
        if value is None and key in merged:
            continue
        merged[key] = value
    return list(merged.items())
