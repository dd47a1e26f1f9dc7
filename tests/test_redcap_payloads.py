import json

import pytest

from redcap_payloads import (
    Arm, Dag, Event, EventForms, InstrumentEventMapping, ProjectSettings, User,
    UserDagMapping, UserRole, serialize_payload,
)


def test_serialize_arms_is_compact_json_array():
    assert serialize_payload([Arm(arm_num='1', name='Arm 1')]) == '[{"arm_num":"1","name":"Arm 1"}]'


def test_serialize_dag_defaults_to_new_group():
    assert json.loads(serialize_payload([Dag('Group API')])) == [
        {'data_access_group_name': 'Group API', 'unique_group_name': ''}
    ]


def test_serialize_event_fields():
    payload = json.loads(serialize_payload([Event('Event 1', '1', unique_event_name='event_1_arm_1')]))

    assert payload == [{
        'event_name': 'Event 1',
        'arm_num': '1',
        'unique_event_name': 'event_1_arm_1',
        'day_offset': '0',
        'offset_min': '0',
        'offset_max': '0',
    }]


def test_serialize_instrument_event_mapping_nests_under_arm():
    mapping = InstrumentEventMapping(
        number='1',
        event=[EventForms('event_1_arm_1', ['instr_1', 'instr_2'])],
    )

    assert json.loads(serialize_payload([mapping])) == [{
        'arm': {
            'number': '1',
            'event': [{'unique_event_name': 'event_1_arm_1', 'form': ['instr_1', 'instr_2']}],
        }
    }]


def test_serialize_project_settings():
    payload = json.loads(serialize_payload([ProjectSettings('New Project via API', project_note='notes')]))

    assert payload == [{
        'project_title': 'New Project via API',
        'purpose': 0,
        'purpose_other': '',
        'project_note': 'notes',
    }]


def test_user_and_role_permission_defaults():
    user = json.loads(serialize_payload([User('test_user_47')]))[0]
    role = json.loads(serialize_payload([UserRole('U-2119C4Y87T', 'Project Manager')]))[0]

    assert user['username'] == 'test_user_47'
    assert user['record_create'] == '1'
    assert user['record_delete'] == '0'
    assert len(user) == 26
    assert role['role_label'] == 'Project Manager'
    assert role['stats_and_charts'] == '1'
    assert len(role) == 26


def test_serialize_mixes_dicts_and_dataclasses():
    items = [UserDagMapping('testuser', 'api_testing_group'), {'record_id': '1', 'age': '42'}]

    assert json.loads(serialize_payload(items)) == [
        {'username': 'testuser', 'redcap_data_access_group': 'api_testing_group'},
        {'record_id': '1', 'age': '42'},
    ]


def test_serialize_rejects_unknown_items():
    with pytest.raises(TypeError):
        serialize_payload(['not a record'])
