"""
AGCOD (Amazon Gift Codes On Demand) service.

AGCOD has no SDK service client, so every call is a hand-built JSON POST
signed with SigV4 before it goes out.
"""
import datetime as dt
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Type, TypeVar

import requests
from botocore.credentials import Credentials

from config import AGCODConfig, DEFAULT_TIMEOUT
from logger_config import get_logger, set_log_level
from utils.decorators import agcod_operation
from utils.exceptions import AGCODAPIError, ValidationError
from .agcod_models import (
    CancelGiftCardRequest,
    CancelGiftCardResponse,
    CreateGiftCardRequest,
    CreateGiftCardResponse,
    GetAvailableFundsRequest,
    GetAvailableFundsResponse,
)
from .sigv4_signer import SigningContext, SigV4Signer

logger = get_logger(__name__)

T = TypeVar('T')


class AGCODService:
    """Service for AGCOD gift card operations."""

    TARGET_PREFIX = 'com.amazonaws.agcod.AGCODService'

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        base_url: str,
        region: str = '',
        service: str = '',
        token: str = '',
        partner_id: str = '',
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        max_workers: int = 4
    ) -> None:
        """
        Initialize AGCOD service.

        Region, service, token and partner_id may also be assigned after
        construction; they are read on every call.

        Args:
            access_key: AWS access key ID of the AGCOD partner
            secret_key: AWS secret access key of the AGCOD partner
            base_url: Endpoint, e.g. https://agcod-v2-fe-gamma.amazon.com
            region: Region the endpoint signs for, e.g. 'us-east-1'
            service: Signing name, normally 'AGCODService'
            token: Optional session token for temporary credentials
            partner_id: Default partner ID for get_available_funds()
            timeout: Per-request timeout in seconds
            session: Optional requests session (created lazily otherwise)
            max_workers: Thread count for the *_async variants
        """
        self.access_key = access_key
        self.secret_key = secret_key
        self.base_url = base_url.rstrip('/')
        self.region = region
        self.service = service
        self.token = token
        self.partner_id = partner_id
        self.timeout = timeout
        self.max_workers = max_workers
        self._session = session
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: AGCODConfig,
        session: Optional[requests.Session] = None
    ) -> "AGCODService":
        """Build a service from validated configuration and apply its log level."""
        set_log_level(config.log_level)
        return cls(
            access_key=config.access_key,
            secret_key=config.secret_key,
            base_url=config.base_url,
            region=config.region,
            service=config.service,
            token=config.session_token or '',
            partner_id=config.partner_id or '',
            timeout=config.timeout,
            session=session,
        )

    @property
    def session(self) -> requests.Session:
        """Lazy initialization of the HTTP session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    @property
    def executor(self) -> ThreadPoolExecutor:
        """Lazy initialization of the executor behind the *_async calls."""
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix='agcod'
                )
            return self._executor

    def close(self) -> None:
        """Wait for pending async calls, then release the executor and session."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "AGCODService":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def signing_context(self) -> SigningContext:
        """
        Build the signing context for the next request.

        Raises:
            ValidationError: If region or service has not been set
        """
        if not self.region:
            raise ValidationError('AGCOD region is not set', field='region')
        if not self.service:
            raise ValidationError('AGCOD signing service is not set', field='service')

        credentials = Credentials(self.access_key, self.secret_key, self.token or None)
        return SigningContext.from_credentials(credentials, self.region, self.service)

    def sign_request(
        self,
        request: requests.PreparedRequest,
        sign_time: dt.datetime
    ) -> None:
        """
        Sign a prepared request in place with SigV4.

        Args:
            request: Prepared request about to be sent
            sign_time: Point in time the signature is valid for

        Raises:
            ValidationError: If the context or the request is incomplete
            SigningError: If the request body cannot be read
        """
        SigV4Signer(self.signing_context()).sign(request, sign_time)

    @agcod_operation('CreateGiftCard')
    def create_gift_card(
        self,
        request: CreateGiftCardRequest,
        sign_time: Optional[dt.datetime] = None
    ) -> CreateGiftCardResponse:
        """
        Create a gift card.

        Args:
            request: Creation request; creation_request_id makes retries idempotent
            sign_time: Signing time (defaults to now, UTC)

        Returns:
            CreateGiftCardResponse with the claim code

        Raises:
            ValidationError: If the request is incomplete
            AGCODAPIError: If the call fails or returns a non-200 status
        """
        request.validate()
        return self._call(
            'CreateGiftCard', request.to_json(), sign_time, CreateGiftCardResponse
        )

    @agcod_operation('CancelGiftCard')
    def cancel_gift_card(
        self,
        request: CancelGiftCardRequest,
        sign_time: Optional[dt.datetime] = None
    ) -> CancelGiftCardResponse:
        """
        Cancel a previously created gift card.

        Raises:
            ValidationError: If the request is incomplete
            AGCODAPIError: If the call fails or returns a non-200 status
        """
        request.validate()
        return self._call(
            'CancelGiftCard', request.to_json(), sign_time, CancelGiftCardResponse
        )

    @agcod_operation('GetAvailableFunds')
    def get_available_funds(
        self,
        partner_id: Optional[str] = None,
        sign_time: Optional[dt.datetime] = None
    ) -> GetAvailableFundsResponse:
        """
        Get the partner's available funds.

        Args:
            partner_id: Partner ID (defaults to the service's partner_id)
            sign_time: Signing time (defaults to now, UTC)

        Raises:
            ValidationError: If no partner ID is available
            AGCODAPIError: If the call fails or returns a non-200 status
        """
        request = GetAvailableFundsRequest(partner_id=partner_id or self.partner_id)
        request.validate()
        return self._call(
            'GetAvailableFunds', request.to_json(), sign_time, GetAvailableFundsResponse
        )

    def create_gift_card_async(
        self,
        request: CreateGiftCardRequest,
        sign_time: Optional[dt.datetime] = None
    ) -> "Future[CreateGiftCardResponse]":
        return self._submit(self.create_gift_card, request, sign_time)

    def cancel_gift_card_async(
        self,
        request: CancelGiftCardRequest,
        sign_time: Optional[dt.datetime] = None
    ) -> "Future[CancelGiftCardResponse]":
        return self._submit(self.cancel_gift_card, request, sign_time)

    def get_available_funds_async(
        self,
        partner_id: Optional[str] = None,
        sign_time: Optional[dt.datetime] = None
    ) -> "Future[GetAvailableFundsResponse]":
        return self._submit(self.get_available_funds, partner_id, sign_time)

    def _submit(self, func: Callable[..., T], *args: Any) -> "Future[T]":
        return self.executor.submit(func, *args)

    def _build_request(self, operation: str, body: bytes) -> requests.PreparedRequest:
        headers = {
            'x-amz-target': f'{self.TARGET_PREFIX}.{operation}',
            'accept': 'application/json',
            'content-type': 'application/json',
        }
        return requests.Request(
            'POST', f'{self.base_url}/{operation}', headers=headers, data=body
        ).prepare()

    def _call(
        self,
        operation: str,
        body: bytes,
        sign_time: Optional[dt.datetime],
        response_cls: Type[T]
    ) -> T:
        prepared = self._build_request(operation, body)
        self.sign_request(prepared, sign_time or dt.datetime.now(dt.timezone.utc))

        try:
            response = self.session.send(prepared, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f'AGCOD {operation} request failed: {str(e)}')
            raise AGCODAPIError(
                f'AGCOD {operation} request failed: {str(e)}',
                operation=operation
            ) from e

        if response.status_code != 200:
            raise AGCODAPIError(
                f'status code: {response.status_code}, body: {response.text}',
                status_code=response.status_code,
                response_data=self._error_body(response),
                operation=operation
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AGCODAPIError(
                f'AGCOD {operation} returned invalid JSON: {str(e)}',
                status_code=response.status_code,
                operation=operation
            ) from e
        if not isinstance(data, dict):
            raise AGCODAPIError(
                f'AGCOD {operation} returned unexpected body: {response.text}',
                status_code=response.status_code,
                operation=operation
            )

        logger.info(f'AGCOD {operation} returned status {data.get("status", "N/A")}')
        return response_cls.from_dict(data)

    @staticmethod
    def _error_body(response: requests.Response) -> Optional[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None
