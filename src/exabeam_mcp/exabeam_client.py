# exabeam_client.py
import json
import logging
from datetime import datetime, timedelta, timezone

import requests

from exabeam_mcp.errors import AuthenticationError, UnknownToolError

logger = logging.getLogger(__name__)


# Token exchange works globally from us-west; data calls go to the region
# the token audience belongs to. Neither is derived from EXABEAM_URL.
AUTH_URL = "https://api.us-west.exabeam.cloud/auth/v1/token"
API_BASE_URL = "https://api.eu.exabeam.cloud"

EVENT_FIELDS = ["time", "user", "action", "result", "src_ip", "dest_ip"]
SEVERITY_RANKS = {
    "low": 1,
    "medium": 2,
    "high": 3,
    "critical": 4,
}
ASSET_SEARCH_LIMIT = 50


def _isoformat(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _to_text(data) -> str:
    return json.dumps(data, indent=2)


def _response_body(response):
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_description(exc: requests.RequestException) -> str:
    # requests.Response is falsy for error statuses, compare against None.
    if exc.response is not None:
        body = _response_body(exc.response)
        if isinstance(body, dict) and body.get("error_description"):
            return body["error_description"]
    return str(exc)


def authenticate(config) -> str:
    """
    Exchange the API key and secret for a bearer token (OAuth 2.0 client credentials).
    A new token is requested for every tool call.
    """
    payload = {
        "grant_type": "client_credentials",
        "client_id": config.api_key,
        "client_secret": config.api_secret,
    }
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }

    try:
        resp = requests.post(AUTH_URL, headers=headers, json=payload)
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as e:
        details = _response_body(e.response) if e.response is not None else str(e)
        logger.error("Authentication error: %s", details)
        raise AuthenticationError(f"Authentication failed: {_error_description(e)}") from e

    token = data.get("access_token") if isinstance(data, dict) else None
    if not token:
        logger.error("Authentication error: no access_token in response")
        raise AuthenticationError("Authentication failed: no access_token in response")
    return token


def search_events(arguments: dict, headers: dict) -> str:
    """
    Search security events.
    Failures are reported in the returned text together with the request that was sent.
    """
    now = datetime.now(timezone.utc)
    limit = arguments.get("limit")
    if isinstance(limit, float) and limit.is_integer():
        limit = int(limit)

    search_params = {
        "filter": arguments.get("query") or "",
        "fields": EVENT_FIELDS,
        "startTime": arguments.get("startTime") or _isoformat(now - timedelta(hours=24)),
        "endTime": arguments.get("endTime") or _isoformat(now),
        "limit": 100 if limit is None else limit,
    }

    try:
        resp = requests.post(
            f"{API_BASE_URL}/search/v2/events",
            headers={**headers, "Content-Type": "application/json", "Accept": "application/json"},
            json=search_params,
        )
        resp.raise_for_status()
        return _to_text(resp.json())
    except requests.RequestException as e:
        response = e.response
        status = response.status_code if response is not None else "unknown"
        reason = response.reason if response is not None else "unknown"
        details = _response_body(response) if response is not None else None

        error_details = {
            "status": status,
            "statusText": reason,
            "data": details,
            "request": search_params,
        }
        logger.error("Search error details: %s", _to_text(error_details))

        return (
            f"Error: {status} - {reason}\n\n"
            f"Details: {_to_text(details or str(e))}\n\n"
            f"Request sent: {_to_text(search_params)}"
        )


def get_user_timeline(arguments: dict, headers: dict) -> str:
    """Activity timeline for a user over the last `days` days (default 7)."""
    username = arguments.get("username")
    days = arguments.get("days")
    if days is None:
        days = 7

    end_time = datetime.now(timezone.utc)
    start_time = end_time - timedelta(days=days)

    resp = requests.get(
        f"{API_BASE_URL}/users/v1/{username}/timeline",
        headers=headers,
        params={
            "startTime": _isoformat(start_time),
            "endTime": _isoformat(end_time),
        },
    )
    resp.raise_for_status()
    return _to_text(resp.json())


def get_notable_events(arguments: dict, headers: dict) -> str:
    """
    Notable events at or above a severity level.
    Defaults: severity "medium", last 24 hours.
    """
    severity = arguments.get("severity") or "medium"
    hours = arguments.get("hours")
    if hours is None:
        hours = 24

    end_time = datetime.now(timezone.utc)
    start_time = end_time - timedelta(hours=hours)

    # an unknown severity maps to None, which requests leaves out of the query string
    resp = requests.get(
        f"{API_BASE_URL}/notable-events/v1/events",
        headers=headers,
        params={
            "minSeverity": SEVERITY_RANKS.get(severity),
            "startTime": _isoformat(start_time),
            "endTime": _isoformat(end_time),
        },
    )
    resp.raise_for_status()
    return _to_text(resp.json())


def get_user_risk_score(arguments: dict, headers: dict) -> str:
    username = arguments.get("username")

    resp = requests.get(f"{API_BASE_URL}/users/v1/{username}/risk-score", headers=headers)
    resp.raise_for_status()
    return _to_text(resp.json())


def search_assets(arguments: dict, headers: dict) -> str:
    """Search assets. Results are always capped at ASSET_SEARCH_LIMIT."""
    asset_type = arguments.get("assetType") or "all"

    search_params = {
        "query": arguments.get("query"),
        "limit": ASSET_SEARCH_LIMIT,
    }
    if asset_type != "all":
        search_params["assetType"] = asset_type

    resp = requests.post(f"{API_BASE_URL}/assets/v1/search", headers=headers, json=search_params)
    resp.raise_for_status()
    return _to_text(resp.json())


TOOL_HANDLERS = {
    "search_events": search_events,
    "get_user_timeline": get_user_timeline,
    "get_notable_events": get_notable_events,
    "get_user_risk_score": get_user_risk_score,
    "search_assets": search_assets,
}


def call_tool(config, name: str, arguments: dict = None) -> str:
    """
    Authenticate, then run the handler registered for `name`.
    Every failure comes back as text starting with "Error:"; nothing is raised.
    """
    try:
        token = authenticate(config)
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        handler = TOOL_HANDLERS.get(name)
        if handler is None:
            raise UnknownToolError(f"Unknown tool: {name}")

        return handler(arguments or {}, headers)
    except Exception as e:
        logger.warning("Tool %s failed: %s", name, e)
        return f"Error: {e}"
