"""
Client for the remote asset store's GraphQL API.

Only the three operations the publish pipeline needs are implemented:
existence lookup by storage key, upload-URL issuance, and the per-update
asset limit of a project. Requests are not retried here; retry policy
belongs to the upload transport.

Example usage:
    >>> from src.api import AssetStoreClient
    >>> client = AssetStoreClient(api_url, access_token)
    >>> results = client.get_asset_metadata(["kLZ2..."])
    >>> results[0].status
    <AssetMetadataStatus.EXISTS: 'EXISTS'>
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import requests

from src.errors import ApiError, ProtocolError
from src.utils.logging import get_logger
from src.utils.metrics import get_metrics

logger = get_logger(__name__)

GET_ASSET_METADATA_QUERY = """
query GetAssetMetadataQuery($storageKeys: [String!]!) {
  asset {
    metadata(storageKeys: $storageKeys) {
      storageKey
      status
    }
  }
}
"""

GET_SIGNED_UPLOAD_MUTATION = """
mutation GetSignedUploadMutation($contentTypes: [String!]!) {
  asset {
    getSignedAssetUploadSpecifications(assetContentTypes: $contentTypes) {
      specifications
    }
  }
}
"""

GET_ASSET_LIMIT_QUERY = """
query GetAssetLimitPerUpdateGroupForApp($appId: String!) {
  app {
    byId(appId: $appId) {
      id
      assetLimitPerUpdateGroup
    }
  }
}
"""


class AssetMetadataStatus(str, Enum):
    """Existence status the store reports for a storage key."""

    EXISTS = "EXISTS"
    DOES_NOT_EXIST = "DOES_NOT_EXIST"


@dataclass(frozen=True)
class AssetMetadataResult:
    storage_key: str
    status: AssetMetadataStatus

    @property
    def exists(self) -> bool:
        return self.status == AssetMetadataStatus.EXISTS


class AssetStoreClient:
    """
    Thin GraphQL client over a requests.Session.

    Attributes:
        api_url: GraphQL endpoint
        timeout_seconds: Per-request timeout
    """

    def __init__(
        self,
        api_url: str,
        access_token: Optional[str] = None,
        timeout_seconds: float = 60.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if access_token:
            self.session.headers.update({"Authorization": f"Bearer {access_token}"})

    def _execute(
        self,
        operation: str,
        document: str,
        variables: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        POST a GraphQL document and return its `data` member.

        Raises:
            ApiError: On transport failure, non-2xx status or GraphQL errors
            ProtocolError: If the body is not a JSON object with `data`
        """
        metrics = get_metrics()
        try:
            response = self.session.post(
                self.api_url,
                json={"query": document, "variables": variables},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            metrics.record_api_error(operation)
            raise ApiError(
                f"{operation} failed with HTTP {e.response.status_code}: {e}",
                operation=operation,
                status_code=e.response.status_code,
            ) from e
        except requests.RequestException as e:
            metrics.record_api_error(operation)
            raise ApiError(f"{operation} request failed: {e}", operation=operation) from e

        try:
            body = response.json()
        except ValueError as e:
            metrics.record_api_error(operation)
            raise ProtocolError(f"{operation} returned a non-JSON response") from e

        if not isinstance(body, dict):
            raise ProtocolError(f"{operation} returned an unexpected response body")

        errors = body.get("errors")
        if errors:
            metrics.record_api_error(operation)
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            raise ApiError(f"{operation} failed: {messages}", operation=operation)

        data = body.get("data")
        if not isinstance(data, dict):
            raise ProtocolError(f"{operation} response has no data")
        return data

    def get_asset_metadata(self, storage_keys: Sequence[str]) -> List[AssetMetadataResult]:
        """
        Ask the store which storage keys already exist.

        Always hits the network: results change while other publishers and
        our own uploads land.

        Args:
            storage_keys: Keys to look up

        Returns:
            One result per key the store reported on
        """
        if not storage_keys:
            return []

        get_metrics().record_existence_check()
        data = self._execute(
            "asset_metadata",
            GET_ASSET_METADATA_QUERY,
            {"storageKeys": list(storage_keys)},
        )
        try:
            entries = data["asset"]["metadata"]
            results = [
                AssetMetadataResult(
                    storage_key=entry["storageKey"],
                    status=AssetMetadataStatus(entry["status"]),
                )
                for entry in entries
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(f"Malformed asset metadata response: {e}") from e

        logger.debug(
            f"Asset metadata: {sum(r.exists for r in results)}/{len(results)} present"
        )
        return results

    def get_upload_urls(self, content_types: Sequence[str]) -> List[str]:
        """
        Request one signed upload specification per content type.

        Args:
            content_types: MIME type of each asset to upload

        Returns:
            JSON-encoded presigned post specifications, in request order
        """
        data = self._execute(
            "upload_urls",
            GET_SIGNED_UPLOAD_MUTATION,
            {"contentTypes": list(content_types)},
        )
        try:
            specifications = data["asset"]["getSignedAssetUploadSpecifications"]["specifications"]
        except (KeyError, TypeError) as e:
            raise ProtocolError(f"Malformed upload specification response: {e}") from e

        if not isinstance(specifications, list):
            raise ProtocolError("Upload specifications must be a list")
        return [str(specification) for specification in specifications]

    def get_asset_limit_per_update_group(self, project_id: str) -> int:
        """
        Fetch how many assets one update group of the project may contain.

        Args:
            project_id: Project (app) identifier

        Returns:
            Asset limit
        """
        data = self._execute("asset_limit", GET_ASSET_LIMIT_QUERY, {"appId": project_id})
        try:
            limit = data["app"]["byId"]["assetLimitPerUpdateGroup"]
        except (KeyError, TypeError) as e:
            raise ProtocolError(f"Malformed asset limit response: {e}") from e

        if not isinstance(limit, int) or isinstance(limit, bool):
            raise ProtocolError(f"Asset limit must be an integer (got: {limit!r})")
        return limit
