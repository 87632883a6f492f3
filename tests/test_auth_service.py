import asyncio
from unittest.mock import Mock, patch

import google.auth.exceptions
import pytest

from relay.services.auth_service import CredentialError, EngineCredential
from tests.conftest import ENGINE_URL


def _google_credentials(valid: bool = True, token: str = "id-token") -> Mock:
    credentials = Mock()
    credentials.valid = valid
    credentials.token = token
    return credentials


class TestAcquire:
    def test_fetches_credentials_for_engine_audience(self):
        credentials = _google_credentials()
        with patch(
            "relay.services.auth_service.id_token.fetch_id_token_credentials", return_value=credentials
        ) as fetch:
            credential = EngineCredential(ENGINE_URL, request_factory=Mock)
            credential.acquire()

        assert fetch.call_args[0][0] == ENGINE_URL
        credentials.refresh.assert_called_once()
        assert credential.get_token() == "id-token"

    def test_missing_default_credentials_fails_loudly(self):
        with patch(
            "relay.services.auth_service.id_token.fetch_id_token_credentials",
            side_effect=google.auth.exceptions.DefaultCredentialsError("no ADC"),
        ):
            credential = EngineCredential(ENGINE_URL, request_factory=Mock)
            with pytest.raises(CredentialError, match=ENGINE_URL):
                credential.acquire()

    def test_refresh_failure_fails_loudly(self):
        credentials = _google_credentials()
        credentials.refresh.side_effect = google.auth.exceptions.RefreshError("denied")
        credential = EngineCredential(ENGINE_URL, credentials=credentials, request_factory=Mock)
        with pytest.raises(CredentialError):
            credential.acquire()


class TestGetToken:
    def test_before_acquire(self):
        credential = EngineCredential(ENGINE_URL, request_factory=Mock)
        with pytest.raises(CredentialError):
            credential.get_token()

    def test_reuses_valid_token(self):
        credentials = _google_credentials(valid=True)
        credential = EngineCredential(ENGINE_URL, credentials=credentials, request_factory=Mock)

        assert credential.get_token() == "id-token"
        assert credential.get_token() == "id-token"
        credentials.refresh.assert_not_called()

    def test_refreshes_expired_token(self):
        credentials = _google_credentials(valid=False, token="old-token")

        def _refresh(request):
            credentials.valid = True
            credentials.token = "new-token"

        credentials.refresh.side_effect = _refresh
        credential = EngineCredential(ENGINE_URL, credentials=credentials, request_factory=Mock)

        assert credential.get_token() == "new-token"
        credentials.refresh.assert_called_once()

    def test_refresh_error_raises_credential_error(self):
        credentials = _google_credentials(valid=False)
        credentials.refresh.side_effect = google.auth.exceptions.TransportError("metadata down")
        credential = EngineCredential(ENGINE_URL, credentials=credentials, request_factory=Mock)
        with pytest.raises(CredentialError):
            credential.get_token()

    def test_async_token(self):
        credential = EngineCredential(ENGINE_URL, credentials=_google_credentials(), request_factory=Mock)
        assert asyncio.run(credential.get_token_async()) == "id-token"
