import base64

import pytest

from kubebind.discovery import (
    OAUTH2_CODE_GRANT_METHOD,
    AuthenticationMethod,
    BindingProvider,
    BindingResponse,
    BindingResponseAuthentication,
    BindingResponseAuthenticationOAuth2CodeGrant,
    OAuth2CodeGrant,
)
from kubebind.meta import API_VERSION


def _provider():
    return BindingProvider(
        provider_pretty_name="MangoDB Inc.",
        version="v0.1.0",
        authentication_methods=[
            AuthenticationMethod(
                method=OAUTH2_CODE_GRANT_METHOD,
                oauth2_code_grant=OAuth2CodeGrant(authenticated_url="http://example.com/authorize"),
            )
        ],
    )


def test_provider_round_trip():
    provider = _provider()
    assert BindingProvider.from_dict(provider.to_dict()) == provider


def test_provider_wire_shape():
    data = _provider().to_dict()
    assert data["apiVersion"] == API_VERSION
    assert data["kind"] == "BindingProvider"
    assert data["providerPrettyName"] == "MangoDB Inc."
    method = data["authenticationMethods"][0]
    assert method["method"] == OAUTH2_CODE_GRANT_METHOD
    assert method["oauth2CodeGrant"]["authenticatedURL"] == "http://example.com/authorize"


def test_provider_without_methods_omits_field():
    data = BindingProvider(provider_pretty_name="p", version="v1").to_dict()
    assert "authenticationMethods" not in data


def test_provider_wrong_kind_rejected():
    data = _provider().to_dict()
    data["kind"] = "BindingResponse"
    with pytest.raises(ValueError):
        BindingProvider.from_dict(data)


def _response():
    return BindingResponse(
        kubeconfig=b"apiVersion: v1\nkind: Config\n",
        requests=[{"apiVersion": API_VERSION, "kind": "APIServiceExportRequest"}],
        authentication=BindingResponseAuthentication(
            oauth2_code_grant=BindingResponseAuthenticationOAuth2CodeGrant(session_id="s1", id="u1")
        ),
    )


def test_response_round_trip():
    response = _response()
    assert BindingResponse.from_dict(response.to_dict()) == response


def test_response_kubeconfig_is_base64():
    response = _response()
    data = response.to_dict()
    assert base64.b64decode(data["kubeconfig"]) == response.kubeconfig


def test_response_authentication_keys():
    data = _response().to_dict()
    assert data["authentication"]["oauth2CodeGrant"] == {"sid": "s1", "id": "u1"}


def test_response_without_authentication():
    response = BindingResponse(kubeconfig=b"x", requests=[{"kind": "Foo"}])
    data = response.to_dict()
    assert data["authentication"] == {}
    assert BindingResponse.from_dict(data).authentication.oauth2_code_grant is None
    assert BindingResponse.from_dict(data).requests == [{"kind": "Foo"}]


def test_response_invalid_kubeconfig():
    data = _response().to_dict()
    data["kubeconfig"] = "not base64!!"
    with pytest.raises(ValueError):
        BindingResponse.from_dict(data)