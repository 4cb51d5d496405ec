import argparse
import asyncio
import json
from dataclasses import dataclass
from string import Template
from typing import Any, Optional

import aiohttp
import requests


'''
    Default configuration values.
    These can be modified as needed.
'''

defaults = {
    "region": "na1",                       #Platform routing value. The original bot only ever watched NA accounts.
    "request_timeout": 5.0,                #Seconds allowed for any single request before it is abandoned.
    "api_key": "",                         #Riot developer/production key, sent as the X-Riot-Token header.
}

'''
API endpoints used by the announcer. The keys are used to identify the endpoint when calling fetch_endpoint()
or RiotClient._get(). Every URL is relative to the platform host for the configured region.
'''
HOST = "https://$region.api.riotgames.com"
endpoints = {
    "summoner_by_name":
                    {
                    "endpoint": HOST + "/lol/summoner/v3/summoners/by-name/$summonerName",
                    "method": "GET"
                    },
    "summoner_by_id":
                    {
                    "endpoint": HOST + "/lol/summoner/v3/summoners/$summonerId",
                    "method": "GET"
                    },
    "recent_matchlist":
                    {
                    "endpoint": HOST + "/lol/match/v3/matchlists/by-account/$accountId/recent",
                    "method": "GET"
                    },
    "match":
                    {
                    "endpoint": HOST + "/lol/match/v3/matches/$matchId",
                    "method": "GET"
                    },
}


## <------------------------------------- Errors and models -------------------------------------> ##

class RiotAPIError(Exception):
    """Raised when a request to the Riot API fails or times out."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(RiotAPIError):
    """The requested summoner or match does not exist."""


@dataclass(frozen=True)
class Summoner:
    id: int
    account_id: int
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> "Summoner":
        return cls(
            id=int(data["id"]),
            account_id=int(data["accountId"]),
            name=str(data["name"]),
        )


def build_url(endpoint_name: str, region: str = defaults["region"], **values) -> str:
    '''
    Builds the full URL for an endpoint in the endpoints dictionary.

    :param endpoint_name: Key of the endpoints dictionary.
    :param region: Platform routing value, e.g. na1 or euw1.
    :param values: Values substituted into the endpoint template (summonerName, summonerId, accountId, matchId).
    '''
    if endpoint_name not in endpoints:
        raise ValueError(f"Invalid endpoint. Valid endpoints are: {list(endpoints.keys())}")
    return Template(endpoints[endpoint_name]["endpoint"]).substitute(region=region, **values)


## <------------------------------------- Async client -------------------------------------> ##

class RiotClient:
    """Async Riot API client used by the watch workers and for load-time reconciliation.

    Each request is bounded by its own timeout so one slow call never holds up
    the other watches sharing this client.
    """

    def __init__(
        self,
        api_key: str,
        region: str = defaults["region"],
        request_timeout: float = defaults["request_timeout"],
    ):
        self.api_key = api_key
        self.region = region
        self.request_timeout = request_timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"X-Riot-Token": self.api_key})

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get(self, endpoint_name: str, **values) -> Any:
        await self._ensure_session()
        url = build_url(endpoint_name, region=self.region, **values)
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        try:
            async with self._session.get(url, timeout=timeout) as response:
                if response.status == 404:
                    raise NotFoundError(f"{endpoint_name} not found: {values}", status_code=404)
                if response.status != 200:
                    raise RiotAPIError(
                        f"{endpoint_name} returned {response.status} {response.reason}",
                        status_code=response.status,
                    )
                return await response.json()
        except asyncio.TimeoutError as e:
            raise RiotAPIError(f"{endpoint_name} timed out after {self.request_timeout}s") from e
        except aiohttp.ClientError as e:
            raise RiotAPIError(f"{endpoint_name} request failed: {e}") from e
        except ValueError as e:
            raise RiotAPIError(f"{endpoint_name} returned a body that is not JSON: {e}") from e

    async def get_summoner_by_name(self, summoner_name: str) -> Summoner:
        data = await self._get("summoner_by_name", summonerName=summoner_name)
        return Summoner.from_dict(data)

    async def get_summoner_by_id(self, summoner_id: int) -> Summoner:
        data = await self._get("summoner_by_id", summonerId=summoner_id)
        return Summoner.from_dict(data)

    async def fetch_recent_matches(self, summoner: Summoner) -> list[dict]:
        '''
        Returns the summoner's recent match summaries. The API returns them most recent first,
        and callers rely on index 0 being the latest match.
        '''
        data = await self._get("recent_matchlist", accountId=summoner.account_id)
        return list(data.get("matches") or [])

    async def fetch_match_detail(self, match_id: int) -> dict:
        return await self._get("match", matchId=match_id)


## <------------------------------------- General purpose endpoint handler -------------------------------------> ##

def fetch_endpoint(endpoint_name=None, api_key=defaults["api_key"], region=defaults["region"], timeout=defaults["request_timeout"], quiet=False, **values):
    '''
    Fetches any endpoint defined in the endpoints dictionary synchronously. Used by the command line
    tool below for poking at the API by hand; the announcer itself goes through RiotClient.

    :param endpoint_name: The name of the endpoint to fetch. Must be a key in the endpoints dictionary.
    :param api_key: Riot API key, sent as the X-Riot-Token header.
    :param region: Platform routing value.
    :param values: Values substituted into the endpoint template.
    '''

    #Validate the endpoint
    if not endpoint_name or endpoint_name not in endpoints:
        return {"status_code": 400, "message": f"Invalid or missing endpoint. Valid endpoints are: {list(endpoints.keys())}", "content": None}

    final_endpoint = build_url(endpoint_name, region=region, **values)
    if not quiet:
        print(f"Fetching endpoint: '{endpoint_name}' with values: {values}")

    try:
        response = requests.request(
            endpoints[endpoint_name]["method"],
            final_endpoint,
            headers={"X-Riot-Token": api_key},
            timeout=timeout,
        )
    except requests.RequestException as e:
        return {"status_code": 503, "message": str(e), "content": None}

    if response.content:
        try:
            content = json.loads(response.content)
        except json.JSONDecodeError:
            content = response.content
    else:
        content = None
    return {"status_code": response.status_code, "message": response.reason, "content": content}


def _print_response(response, quiet=False):
    if quiet:
        return
    print(f"Status: {response['status_code']} {response['message']}")
    content = response.get("content")
    if content is None:
        return
    if isinstance(content, (dict, list)):
        print(json.dumps(content, indent=2))
    else:
        print(content)


## <------------------------------------- Arg parsing for CLI use -------------------------------------> ##

def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Riot API helper for inspecting summoners and matches.")
    parser.add_argument("--api-key", required=True, help="Riot API key.")
    parser.add_argument("--region", default=defaults["region"], help=f"Platform routing value (default: {defaults['region']}).")
    parser.add_argument("--quiet", action="store_true", help="Only print the response body.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--summoner", help="Look up a summoner by name.")
    group.add_argument("--summoner-id", type=int, help="Look up a summoner by numeric id.")
    group.add_argument("--matchlist", type=int, metavar="ACCOUNT_ID", help="Fetch the recent match list for an account id.")
    group.add_argument("--match", type=int, metavar="MATCH_ID", help="Fetch full details for a match.")
    return parser.parse_args(argv)


def main(argv=None):
    args = _parse_args(argv)
    common = {"api_key": args.api_key, "region": args.region, "quiet": args.quiet}
    if args.summoner:
        response = fetch_endpoint("summoner_by_name", summonerName=args.summoner, **common)
    elif args.summoner_id is not None:
        response = fetch_endpoint("summoner_by_id", summonerId=args.summoner_id, **common)
    elif args.matchlist is not None:
        response = fetch_endpoint("recent_matchlist", accountId=args.matchlist, **common)
    else:
        response = fetch_endpoint("match", matchId=args.match, **common)
    _print_response(response)
    return 0 if response["status_code"] == 200 else 1


if __name__ == "__main__":
    raise SystemExit(main())
