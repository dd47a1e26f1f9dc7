import pytest
from requests import Response
from requests.adapters import BaseAdapter

from redcap_client import ClientConfig, REDCapClient

API_URL = 'https://redcap.example.edu/api/'


class RecordingAdapter(BaseAdapter):
    """Transport adapter that records prepared requests instead of sending them"""

    def __init__(self, status_code=200, body=b'[]', error=None):
        super().__init__()
        self.status_code = status_code
        self.body = body
        self.error = error
        self.requests = []
        self.send_kwargs = []

    def send(self, request, **kwargs):
        self.requests.append(request)
        self.send_kwargs.append(kwargs)
        if self.error is not None:
            raise self.error

        response = Response()
        response.status_code = self.status_code
        response._content = self.body
        response.headers['Content-Type'] = 'application/json'
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass

    @property
    def last_body(self):
        body = self.requests[-1].body
        return body.decode('utf-8') if isinstance(body, bytes) else body


@pytest.fixture
def config():
    return ClientConfig(base_url=API_URL, api_token='ABC')


@pytest.fixture
def adapter():
    return RecordingAdapter()


@pytest.fixture
def make_client(adapter):
    """Build a client whose session talks to the recording adapter"""
    clients = []

    def _make(config=None, transport=None, **config_kwargs):
        if config is None:
            config = ClientConfig(base_url=API_URL, api_token='ABC', **config_kwargs)
        client = REDCapClient(config)
        client.session.mount('https://', transport or adapter)
        client.session.mount('http://', transport or adapter)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def client(make_client, config):
    return make_client(config)
