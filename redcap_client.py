#!/usr/bin/env python3

import os
import http.cookiejar
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Sequence, Union

import requests
from dotenv import load_dotenv
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from redcap_actions import ACTIONS, ActionSpec, merge_params
from redcap_params import build_body, encode_indexed
from redcap_payloads import (
    Arm, Dag, Event, InstrumentEventMapping, ProjectSettings, User,
    UserDagMapping, UserRole, serialize_payload,
)

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    'Content-Type': 'application/x-www-form-urlencoded',
    'Accept': 'application/json',
}

LOG_TIME_FORMAT = '%Y-%m-%d %H:%M'


class RedcapApiError(Exception):
    def __init__(self, message, status_code=None, response_body=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RedcapConstructionError(RedcapApiError):
    """Request could not be built (bad URL, unknown action); nothing was sent"""


class RedcapTransportError(RedcapApiError):
    """The POST failed on the network (connection refused, timeout, ...)"""


class ResponseFormat(str, Enum):
    JSON = 'json'
    XML = 'xml'
    CSV = 'csv'

    @classmethod
    def parse(cls, value) -> 'ResponseFormat':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown response format '{value}' (expected json, xml or csv)") from None


@dataclass(frozen=True)
class ClientConfig:
    base_url: str
    api_token: str
    response_format: ResponseFormat = ResponseFormat.JSON
    timeout: Optional[float] = None

    def __post_init__(self):
        if not self.base_url or not self.api_token:
            raise ValueError("REDCap API URL and TOKEN must be set")
        object.__setattr__(self, 'response_format', ResponseFormat.parse(self.response_format))

    @classmethod
    def from_env(cls, **overrides) -> 'ClientConfig':
        """
        Build a config from the environment (and a .env file, if present)

        Reads REDCAP_API_URL, REDCAP_API_TOKEN, REDCAP_RESPONSE_FORMAT
        and REDCAP_TIMEOUT. Keyword overrides (base_url, api_token,
        response_format, timeout) that are not None win over the environment.
        """
        load_dotenv()
        settings = {
            'base_url': os.getenv('REDCAP_API_URL'),
            'api_token': os.getenv('REDCAP_API_TOKEN'),
            'response_format': os.getenv('REDCAP_RESPONSE_FORMAT', 'json'),
            'timeout': os.getenv('REDCAP_TIMEOUT'),
        }
        settings.update({key: value for key, value in overrides.items() if value is not None})

        if not settings['base_url'] or not settings['api_token']:
            raise ValueError("REDCap API URL and TOKEN must be set in .env file")

        timeout = settings['timeout']
        if timeout in (None, ''):
            settings['timeout'] = None
        else:
            try:
                settings['timeout'] = float(timeout)
            except ValueError:
                raise ValueError(f"Invalid REDCAP_TIMEOUT '{timeout}' (expected seconds)") from None

        return cls(**settings)


@dataclass(frozen=True)
class ApiResponse:
    body: bytes
    status_code: int

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')


def _as_list(values) -> List[str]:
    if values is None:
        return []
    if isinstance(values, str):
        return [values]
    return [str(v) for v in values]


def _log_time(value: Union[datetime, str, None]) -> Optional[str]:
    if isinstance(value, datetime):
        return value.strftime(LOG_TIME_FORMAT)
    return value


class REDCapClient:
    def __init__(self, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig.from_env()

        self.session = requests.Session()
        # No cookie jar: every call stands on its token alone
        self.session.cookies.set_policy(http.cookiejar.DefaultCookiePolicy(allowed_domains=[]))
        # One attempt per call: callers decide whether to retry
        retry_strategy = Retry(total=0, read=False, redirect=False)
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self.session.close()

    def build_request_body(self, name: str, values: Optional[Sequence[str]] = None, /, *,
                           token: Optional[str] = None, **params) -> str:
        """
        Assemble the form body for an action without sending it

        Args:
            name: Action name from the ACTIONS table (e.g. 'delete_dags')
            values: Items for the action's list parameter, in index order
            token: Token to send instead of the configured one
            **params: Scalar REDCap parameters, sent in the order given

        Returns:
            The form-encoded body string
        """
        spec = self._lookup(name)
        if values and spec.list_kind is None:
            raise RedcapConstructionError(f"Action '{name}' does not take a list parameter")

        indexed = encode_indexed(_as_list(values), spec.list_kind) if spec.list_kind else ''
        return build_body(
            token=token or self.config.api_token,
            content=spec.content,
            action=spec.action,
            format_key=spec.format_key,
            response_format=self.config.response_format.value,
            params=merge_params(spec, params),
            indexed=indexed,
        )

    def call(self, name: str, values: Optional[Sequence[str]] = None, /, *,
             token: Optional[str] = None, **params) -> ApiResponse:
        """Send one action by name and return the raw response"""
        spec = self._lookup(name)
        if spec.multipart:
            raise RedcapConstructionError(f"Action '{name}' uploads a file; use {name}() instead")
        body = self.build_request_body(name, values, token=token, **params)
        return self._post(spec, data=body.encode('utf-8'), headers=REQUEST_HEADERS)

    def _lookup(self, name: str) -> ActionSpec:
        try:
            return ACTIONS[name]
        except KeyError:
            raise RedcapConstructionError(f"Unknown REDCap action: {name}") from None

    def _post(self, spec: ActionSpec, **kwargs) -> ApiResponse:
        logger.debug(f"POST content={spec.content} action={spec.action or '-'}")
        try:
            response = self.session.post(self.config.base_url, timeout=self.config.timeout, **kwargs)
        except (requests.exceptions.MissingSchema,
                requests.exceptions.InvalidSchema,
                requests.exceptions.InvalidURL,
                requests.exceptions.URLRequired) as e:
            raise RedcapConstructionError(f"Invalid REDCap request: {str(e)}") from e
        except requests.exceptions.RequestException as e:
            raise RedcapTransportError(f"Network or Request Error: {str(e)}") from e

        logger.debug(f"HTTP {response.status_code} for content={spec.content}")
        return ApiResponse(body=response.content, status_code=response.status_code)

    # Deletes

    def delete_arms(self, arms: Sequence[str]) -> ApiResponse:
        return self.call('delete_arms', arms)

    def delete_dags(self, dags: Sequence[str]) -> ApiResponse:
        return self.call('delete_dags', dags)

    def delete_events(self, events: Sequence[str]) -> ApiResponse:
        return self.call('delete_events', events)

    def delete_file(self, record: str, field: str, event: Optional[str] = None) -> ApiResponse:
        return self.call('delete_file', record=record, field=field, event=event)

    def delete_records(self, records: Sequence[str], arm: Optional[str] = None,
                       instrument: Optional[str] = None, event: Optional[str] = None) -> ApiResponse:
        """
        Delete records, or only one instrument/event of them when given

        Args:
            records: Record names to delete
            arm: Arm number for longitudinal projects
            instrument: Limit deletion to this instrument's data
            event: Limit deletion to this unique event name
        """
        return self.call('delete_records', records, arm=arm, instrument=instrument, event=event)

    def delete_user_roles(self, roles: Sequence[str]) -> ApiResponse:
        return self.call('delete_user_roles', roles)

    def delete_users(self, users: Sequence[str]) -> ApiResponse:
        return self.call('delete_users', users)

    # Exports

    def export_arms(self) -> ApiResponse:
        return self.call('export_arms')

    def export_dags(self) -> ApiResponse:
        return self.call('export_dags')

    def export_events(self, arms: Optional[Sequence[str]] = None) -> ApiResponse:
        return self.call('export_events', arms)

    def export_field_names(self, field: Optional[str] = None) -> ApiResponse:
        return self.call('export_field_names', field=field)

    def export_file(self, record: str, field: str, event: Optional[str] = None) -> ApiResponse:
        return self.call('export_file', record=record, field=field, event=event)

    def export_instrument_event_maps(self) -> ApiResponse:
        return self.call('export_instrument_event_maps')

    def export_instrument_pdf(self) -> ApiResponse:
        return self.call('export_instrument_pdf')

    def export_instruments(self) -> ApiResponse:
        return self.call('export_instruments')

    def export_logging(self,
                       begin_time: Union[datetime, str, None] = None,
                       end_time: Union[datetime, str, None] = None,
                       log_type: str = '',
                       user: str = '',
                       record: str = '') -> ApiResponse:
        """
        Export the project logging

        Args:
            begin_time: Earliest entry to return (datetime or 'YYYY-MM-DD HH:MM')
            end_time: Latest entry to return
            log_type: REDCap log type filter (e.g. 'export', 'record')
            user: Only entries by this username
            record: Only entries for this record
        """
        return self.call('export_logging', logtype=log_type, user=user, record=record,
                         beginTime=_log_time(begin_time), endTime=_log_time(end_time))

    def export_metadata(self) -> ApiResponse:
        return self.call('export_metadata')

    def export_project_xml(self, return_metadata_only: bool = False,
                           export_survey_fields: bool = False,
                           export_data_access_groups: bool = False) -> ApiResponse:
        return self.call('export_project_xml',
                         returnMetadataOnly=return_metadata_only,
                         exportSurveyFields=export_survey_fields,
                         exportDataAccessGroups=export_data_access_groups)

    def export_project(self) -> ApiResponse:
        return self.call('export_project')

    def export_records(self, record_type: str = 'flat') -> ApiResponse:
        return self.call('export_records', type=record_type)

    def export_redcap_version(self) -> ApiResponse:
        return self.call('export_redcap_version')

    def export_reports(self, report_id: str) -> ApiResponse:
        return self.call('export_reports', report_id=report_id)

    def export_survey_link(self, record: str, instrument: str, event: Optional[str] = None) -> ApiResponse:
        return self.call('export_survey_link', record=record, instrument=instrument, event=event)

    def export_survey_participants(self, instrument: str, event: Optional[str] = None) -> ApiResponse:
        return self.call('export_survey_participants', instrument=instrument, event=event)

    def export_survey_queue_link(self, record: str, instrument: str, event: Optional[str] = None) -> ApiResponse:
        return self.call('export_survey_queue_link', record=record, instrument=instrument, event=event)

    def export_survey_return_code(self, record: str, instrument: str, event: Optional[str] = None) -> ApiResponse:
        return self.call('export_survey_return_code', record=record, instrument=instrument, event=event)

    def export_dag_maps(self) -> ApiResponse:
        return self.call('export_dag_maps')

    def export_user_roles(self) -> ApiResponse:
        return self.call('export_user_roles')

    def export_users(self) -> ApiResponse:
        return self.call('export_users')

    # Imports

    def import_arms(self, arms: Iterable[Arm], override: bool = False) -> ApiResponse:
        """
        Import arms

        Args:
            arms: Arms to create or rename
            override: If True, arms not listed are deleted by REDCap
        """
        return self.call('import_arms', override=int(override), data=serialize_payload(arms))

    def import_dags(self, dags: Iterable[Dag]) -> ApiResponse:
        return self.call('import_dags', data=serialize_payload(dags))

    def import_events(self, events: Iterable[Event], override: bool = False) -> ApiResponse:
        return self.call('import_events', override=int(override), data=serialize_payload(events))

    def import_file(self, record: str, field: str, file_name: str, file_obj: BinaryIO,
                    event: Optional[str] = None) -> ApiResponse:
        """
        Upload a file into a file-upload field

        Sent as multipart/form-data, which REDCap requires for file imports.
        """
        spec = self._lookup('import_file')
        data: Dict[str, Any] = {
            'token': self.config.api_token,
            'content': spec.content,
            'action': spec.action,
            'record': record,
            'field': field,
        }
        if event is not None:
            data['event'] = event
        return self._post(spec, data=data, files={'file': (file_name, file_obj)},
                          headers={'Accept': REQUEST_HEADERS['Accept']})

    def import_instrument_event_maps(self, maps: Iterable[InstrumentEventMapping]) -> ApiResponse:
        return self.call('import_instrument_event_maps', data=serialize_payload(maps))

    def import_project(self, settings: ProjectSettings, super_token: Optional[str] = None) -> ApiResponse:
        """
        Create a new project

        REDCap only accepts project creation with a 64-character super token;
        pass it as super_token when the client is configured with a project token.
        """
        return self.call('import_project', token=super_token, data=serialize_payload([settings]))

    def import_records(self, records: Iterable[Dict[str, Any]]) -> ApiResponse:
        return self.call('import_records', data=serialize_payload(records))

    def import_user_dag_maps(self, maps: Iterable[UserDagMapping]) -> ApiResponse:
        return self.call('import_user_dag_maps', data=serialize_payload(maps))

    def import_user_roles(self, roles: Iterable[UserRole]) -> ApiResponse:
        return self.call('import_user_roles', data=serialize_payload(roles))

    def import_users(self, users: Iterable[User]) -> ApiResponse:
        return self.call('import_users', data=serialize_payload(users))

    # Other

    def rename_record(self, record: str, new_record_name: str, arm: Optional[str] = None) -> ApiResponse:
        return self.call('rename_record', record=record, new_record_name=new_record_name, arm=arm)

    def switch_dag(self, dag: str) -> ApiResponse:
        return self.call('switch_dag', dag=dag)
