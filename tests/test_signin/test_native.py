"""Tests for the native sign-in flow."""

from __future__ import annotations

import base64

import httpx
import pytest

from conftest import ScriptedTransport, json_response, request_json
from octoauth.exceptions import (
    BadRequestError,
    ConfigError,
    NotFoundError,
    ParsingError,
    RequestForbiddenError,
    ServerVersionUnsupportedError,
    ServiceRequestFailedError,
    TokenUnsupportedError,
    TwoFactorRequiredError,
    UnsupportedServerSchemeError,
)
from octoauth.models import AuthorizationScopes, ClientConfig, User
from octoauth.output import OutputManager, set_output
from octoauth.signin.native import (
    build_authorization_request,
    parse_authorization,
    remap_not_found,
    sign_in,
)


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------


class TestBuildAuthorizationRequest:
    def test_minimal(self, dotcom_user: User) -> None:
        request = build_authorization_request(
            "cid", "secret", dotcom_user, "pw", AuthorizationScopes.of("repo", "user")
        )

        assert request.method == "PUT"
        assert request.path == "authorizations/clients/cid"
        assert request.parameters == {"scopes": "repo,user", "client_secret": "secret"}
        assert request.headers["Accept"] == "application/vnd.github.mirage-preview+json"
        encoded = request.headers["Authorization"].removeprefix("Basic ")
        assert base64.b64decode(encoded) == b"octocat:pw"

    def test_optional_fields(self, dotcom_user: User) -> None:
        request = build_authorization_request(
            "cid",
            "secret",
            dotcom_user,
            "pw",
            AuthorizationScopes.of("repo"),
            note="laptop",
            note_url="https://example.com",
            fingerprint="fp-1",
        )

        assert request.parameters["note"] == "laptop"
        assert request.parameters["note_url"] == "https://example.com"
        assert request.parameters["fingerprint"] == "fp-1"
        assert "X-GitHub-OTP" not in request.headers


class TestParseAuthorization:
    def test_object(self) -> None:
        assert parse_authorization({"id": 3, "token": "t"}).id == "3"

    def test_list_takes_first(self) -> None:
        auth = parse_authorization([{"id": 1, "token": "a"}, {"id": 2, "token": "b"}])
        assert auth.token == "a"

    @pytest.mark.parametrize("payload", [None, [], {"token": "t"}, "text"])
    def test_invalid(self, payload: object) -> None:
        with pytest.raises(ParsingError):
            parse_authorization(payload)


class TestRemapNotFound:
    def test_with_scopes_header(self) -> None:
        remapped = remap_not_found(NotFoundError("x", http_status=404, oauth_scopes=""))
        assert isinstance(remapped, TokenUnsupportedError)

    def test_without_scopes_header(self) -> None:
        remapped = remap_not_found(NotFoundError("x", http_status=404))
        assert isinstance(remapped, ServerVersionUnsupportedError)

    def test_other_status(self) -> None:
        assert remap_not_found(BadRequestError("x", http_status=400)) is None


# ---------------------------------------------------------------------------
# Full flow
# ---------------------------------------------------------------------------


class TestSignIn:
    @pytest.mark.asyncio
    async def test_token_returned_directly(
        self, dotcom_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(json_response({"id": 1, "token": "gho_abc"}))

        client = await sign_in(
            dotcom_user, "pw", ["repo"], config=client_config, transport=script.transport
        )

        assert client.token == "gho_abc"
        assert client.is_authenticated
        assert client.user == dotcom_user
        assert script.methods == ["PUT"]
        assert script.paths == ["/authorizations/clients/test-client-id"]
        body = request_json(script.requests[0])
        assert body["scopes"] == "repo"
        assert body["client_secret"] == "test-client-secret"

    @pytest.mark.asyncio
    async def test_empty_token_recreates_authorization(
        self, dotcom_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            json_response({"id": 1, "token": ""}),
            httpx.Response(204),
            json_response({"id": 2, "token": "gho_new"}),
        )

        client = await sign_in(
            dotcom_user,
            "pw",
            ["repo", "user"],
            fingerprint="fp",
            config=client_config,
            transport=script.transport,
        )

        assert client.token == "gho_new"
        assert script.methods == ["PUT", "DELETE", "PUT"]
        assert script.paths[1] == "/authorizations/1"
        delete = script.requests[1]
        assert delete.url.params["client_secret"] == "test-client-secret"
        assert delete.url.params["fingerprint"] == "fp"
        assert delete.headers["Authorization"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_one_time_password_only_on_delete(
        self, dotcom_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            json_response({"id": 5, "token": None}),
            httpx.Response(204),
            json_response({"id": 6, "token": "gho_otp"}),
        )

        client = await sign_in(
            dotcom_user,
            "pw",
            "repo",
            one_time_password="123456",
            config=client_config,
            transport=script.transport,
        )

        assert client.token == "gho_otp"
        assert "X-GitHub-OTP" not in script.requests[0].headers
        assert script.requests[1].headers["X-GitHub-OTP"] == "123456"
        assert "X-GitHub-OTP" not in script.requests[2].headers

    @pytest.mark.asyncio
    async def test_two_factor_required_passes_through(
        self, dotcom_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            json_response(
                {"message": "Must specify two-factor authentication OTP code."},
                status_code=401,
                headers={"X-GitHub-OTP": "required; app"},
            )
        )

        with pytest.raises(TwoFactorRequiredError) as info:
            await sign_in(
                dotcom_user, "pw", ["repo"], config=client_config, transport=script.transport
            )

        assert info.value.medium == "app"
        assert len(script.requests) == 1

    @pytest.mark.asyncio
    async def test_recreated_authorization_without_token_fails(
        self, dotcom_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            json_response({"id": 1, "token": ""}),
            httpx.Response(204),
            json_response({"id": 2, "token": ""}),
        )

        with pytest.raises(ParsingError, match="without a token"):
            await sign_in(
                dotcom_user, "pw", ["repo"], config=client_config, transport=script.transport
            )

        assert script.methods == ["PUT", "DELETE", "PUT"]

    @pytest.mark.asyncio
    async def test_delete_failure_propagates(
        self, dotcom_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            json_response({"id": 1, "token": ""}),
            json_response({"message": "Forbidden"}, status_code=403),
        )

        with pytest.raises(RequestForbiddenError):
            await sign_in(
                dotcom_user, "pw", ["repo"], config=client_config, transport=script.transport
            )

        assert script.methods == ["PUT", "DELETE"]

    @pytest.mark.asyncio
    async def test_other_errors_pass_through(
        self, dotcom_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(json_response({"message": "bad"}, status_code=422))

        with pytest.raises(ServiceRequestFailedError) as info:
            await sign_in(
                dotcom_user, "pw", ["repo"], config=client_config, transport=script.transport
            )

        assert info.value.http_status == 422
        assert not isinstance(info.value, (TokenUnsupportedError, ServerVersionUnsupportedError))


class TestNotFoundRemapping:
    @pytest.mark.asyncio
    async def test_not_found_with_scopes_is_token_unsupported(
        self, dotcom_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            json_response({"message": "Not Found"}, status_code=404, headers={"X-OAuth-Scopes": ""})
        )

        with pytest.raises(TokenUnsupportedError) as info:
            await sign_in(
                dotcom_user, "pw", ["repo"], config=client_config, transport=script.transport
            )

        assert info.value.http_status == 404
        assert isinstance(info.value.__cause__, NotFoundError)

    @pytest.mark.asyncio
    async def test_not_found_without_scopes_is_server_version_unsupported(
        self, dotcom_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(json_response({"message": "Not Found"}, status_code=404))

        with pytest.raises(ServerVersionUnsupportedError):
            await sign_in(
                dotcom_user, "pw", ["repo"], config=client_config, transport=script.transport
            )


class TestSecureRetry:
    @pytest.mark.asyncio
    async def test_scheme_refused_on_delete_restarts_over_https(
        self, enterprise_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            json_response({"id": 1, "token": ""}),
            httpx.Response(301, headers={"Location": "https://ghe.example.com/api/v3/authorizations/1"}),
            json_response({"id": 2, "token": "gho_secure"}),
        )

        client = await sign_in(
            enterprise_user, "pw", ["repo"], config=client_config, transport=script.transport
        )

        assert client.token == "gho_secure"
        assert client.server.base_url == "https://ghe.example.com"
        assert script.methods == ["PUT", "DELETE", "PUT"]
        assert [r.url.scheme for r in script.requests] == ["http", "http", "https"]

    @pytest.mark.asyncio
    async def test_secure_retry_is_reported(
        self,
        enterprise_user: User,
        client_config: ClientConfig,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        set_output(OutputManager(no_color=True))
        script = ScriptedTransport(
            httpx.UnsupportedProtocol("refused"),
            json_response({"id": 1, "token": "gho_secure"}),
        )

        await sign_in(
            enterprise_user, "pw", ["repo"], config=client_config, transport=script.transport
        )

        err = capsys.readouterr().err
        assert "Warning: http://ghe.example.com/api/v3 refused the scheme" in err
        assert "https://ghe.example.com/api/v3" in err

    @pytest.mark.asyncio
    async def test_retries_once_over_https(
        self, enterprise_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            httpx.Response(
                301,
                headers={"Location": "https://ghe.example.com/api/v3/authorizations/clients/x"},
            ),
            json_response({"id": 1, "token": "gho_secure"}),
        )

        client = await sign_in(
            enterprise_user, "pw", ["repo"], config=client_config, transport=script.transport
        )

        assert client.token == "gho_secure"
        assert client.server.base_url == "https://ghe.example.com"
        assert str(script.requests[0].url).startswith("http://ghe.example.com/api/v3/")
        assert str(script.requests[1].url) == (
            "https://ghe.example.com/api/v3/authorizations/clients/test-client-id"
        )

    @pytest.mark.asyncio
    async def test_secure_retry_also_recreates_authorization(
        self, enterprise_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            httpx.UnsupportedProtocol("refused"),
            json_response({"id": 9, "token": ""}),
            httpx.Response(204),
            json_response({"id": 10, "token": "gho_again"}),
        )

        client = await sign_in(
            enterprise_user, "pw", ["repo"], config=client_config, transport=script.transport
        )

        assert client.token == "gho_again"
        assert script.methods == ["PUT", "PUT", "DELETE", "PUT"]
        assert all(r.url.scheme == "https" for r in script.requests[1:])

    @pytest.mark.asyncio
    async def test_second_scheme_failure_is_terminal(
        self, enterprise_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            httpx.UnsupportedProtocol("refused"),
            httpx.UnsupportedProtocol("refused again"),
        )

        with pytest.raises(UnsupportedServerSchemeError):
            await sign_in(
                enterprise_user, "pw", ["repo"], config=client_config, transport=script.transport
            )

        assert len(script.requests) == 2

    @pytest.mark.asyncio
    async def test_errors_after_retry_are_not_remapped(
        self, enterprise_user: User, client_config: ClientConfig
    ) -> None:
        script = ScriptedTransport(
            httpx.UnsupportedProtocol("refused"),
            json_response({"message": "Not Found"}, status_code=404),
        )

        with pytest.raises(NotFoundError):
            await sign_in(
                enterprise_user, "pw", ["repo"], config=client_config, transport=script.transport
            )


class TestConfiguration:
    @pytest.mark.asyncio
    async def test_missing_client_id_fails_before_any_request(self, dotcom_user: User) -> None:
        script = ScriptedTransport()

        with pytest.raises(ConfigError, match="client id"):
            await sign_in(
                dotcom_user,
                "pw",
                ["repo"],
                config=ClientConfig(client_secret="s"),
                transport=script.transport,
            )

        assert script.requests == []

    @pytest.mark.asyncio
    async def test_missing_client_secret_fails_before_any_request(self, dotcom_user: User) -> None:
        script = ScriptedTransport()

        with pytest.raises(ConfigError, match="client secret"):
            await sign_in(
                dotcom_user,
                "pw",
                ["repo"],
                config=ClientConfig(client_id="cid"),
                transport=script.transport,
            )

        assert script.requests == []

    @pytest.mark.asyncio
    async def test_config_resolved_from_environment(
        self, dotcom_user: User, isolated_config: object, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("OCTOAUTH_CLIENT_ID", "env-id")
        monkeypatch.setenv("OCTOAUTH_CLIENT_SECRET", "env-secret")
        script = ScriptedTransport(json_response({"id": 1, "token": "t"}))

        await sign_in(dotcom_user, "pw", ["repo"], transport=script.transport)

        assert script.paths == ["/authorizations/clients/env-id"]
        assert request_json(script.requests[0])["client_secret"] == "env-secret"
