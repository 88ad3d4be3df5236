"""SAM.gov Opportunities v2 search fetcher."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

from govcon.domain.models import RawOpportunity
from govcon.logging import get_logger
from govcon.utils.timestamps import format_sam_query_date, utc_now

from .base import BaseFetcher
from .exceptions import FetcherConfigurationError, FetcherResponseError

logger = get_logger(__name__, component="fetcher")

SOURCES_SOUGHT_PTYPE = "r"
MAX_WINDOW_DAYS = 364


def _today() -> date:
    return utc_now().date()


class SamGovFetcher(BaseFetcher):
    """Fetcher for the public SAM.gov opportunities search.

    API Details:
        Endpoint: https://api.sam.gov/opportunities/v2/search
        Method: GET
        Authentication: ``api_key`` query parameter
        Response: JSON object with an ``opportunitiesData`` array

    ``fetch`` filters by NAICS code (``ncode``) and the configured
    procurement types; ``fetch_alternate`` asks for Sources Sought notices
    (``ptype=r``); ``fetch_by_title`` searches titles with no NAICS filter.
    """

    SOURCE_NAME = "SAM.gov"
    API_BASE_URL = "https://api.sam.gov/opportunities/v2/search"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        procurement_types: str = "o,k,p",
        set_aside: Optional[str] = None,
        limit: int = 100,
        posted_within_days: int = 30,
        today: Callable[[], date] = _today,
        **kwargs,
    ) -> None:
        """Initialize the SAM.gov fetcher.

        Args:
            api_key: api.sam.gov key
            base_url: Override for the search endpoint
            procurement_types: ``ptype`` for regular fetches
            set_aside: Optional ``setaside`` filter applied to NAICS searches
            limit: Records per request (1-1000)
            posted_within_days: Look-back window, capped at 364 days
            today: Returns the current date; injectable for tests
            **kwargs: Transport settings passed to BaseFetcher

        Raises:
            FetcherConfigurationError: If the key is missing or limit is out of range
        """
        super().__init__(**kwargs)
        if not api_key or not api_key.strip():
            raise FetcherConfigurationError("SAM.gov API key is required")
        if not 1 <= limit <= 1000:
            raise FetcherConfigurationError(f"limit must be between 1 and 1000, got: {limit}")

        self.api_key = api_key.strip()
        self.base_url = base_url or self.API_BASE_URL
        self.procurement_types = procurement_types
        self.set_aside = set_aside
        self.limit = limit
        self.posted_within_days = max(1, min(posted_within_days, MAX_WINDOW_DAYS))
        self._today = today

    def fetch(self, partition_key: str) -> list[RawOpportunity]:
        """Fetch notices for one NAICS code using the configured procurement types."""
        return self._search(
            self._naics_params(partition_key, self.procurement_types),
            label=f"naics={partition_key}",
        )

    def fetch_alternate(self, partition_key: str) -> list[RawOpportunity]:
        """Fetch Sources Sought notices for one NAICS code."""
        return self._search(
            self._naics_params(partition_key, SOURCES_SOUGHT_PTYPE),
            label=f"naics={partition_key} ptype={SOURCES_SOUGHT_PTYPE}",
        )

    def fetch_by_title(self, keyword: str) -> list[RawOpportunity]:
        """Search all procurement types for a title keyword (e.g. "SBIR")."""
        params = self._window_params()
        params["title"] = keyword
        return self._search(params, label=f"title={keyword}")

    def _window_params(self) -> Dict[str, Any]:
        posted_to = self._today()
        posted_from = posted_to - timedelta(days=self.posted_within_days)
        return {
            "api_key": self.api_key,
            "postedFrom": format_sam_query_date(posted_from),
            "postedTo": format_sam_query_date(posted_to),
            "limit": self.limit,
        }

    def _naics_params(self, naics_code: str, ptype: str) -> Dict[str, Any]:
        params = self._window_params()
        params["ptype"] = ptype
        params["ncode"] = naics_code
        if self.set_aside:
            params["setaside"] = self.set_aside
        return params

    def _search(self, params: Dict[str, Any], label: str) -> list[RawOpportunity]:
        logger.info(
            f"Fetching SAM.gov opportunities ({label})",
            extra={
                "event": "fetcher.search.started",
                "query": label,
                "posted_from": params["postedFrom"],
                "posted_to": params["postedTo"],
                "limit": params["limit"],
            },
        )

        response = self._make_request(self.base_url, params=params)
        if not isinstance(response, dict):
            raise FetcherResponseError(
                f"Expected JSON object response, got {type(response).__name__}"
            )

        records = response.get("opportunitiesData") or []
        if not isinstance(records, list):
            raise FetcherResponseError(
                f"Expected 'opportunitiesData' to be array, got {type(records).__name__}"
            )

        raw_opportunities = []
        for record in records:
            try:
                raw_opportunities.append(self._transform(record))
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning(
                    "Failed to map SAM.gov record",
                    extra={
                        "event": "fetcher.record.skipped",
                        "notice_id": record.get("noticeId") if isinstance(record, dict) else None,
                        "error": str(e),
                    },
                )

        logger.info(
            f"Fetched {len(raw_opportunities)} opportunities ({label})",
            extra={
                "event": "fetcher.search.completed",
                "query": label,
                "count": len(raw_opportunities),
                "total_records": response.get("totalRecords"),
            },
        )
        return raw_opportunities

    def _transform(self, record: Dict[str, Any]) -> RawOpportunity:
        """Map one ``opportunitiesData`` element to a RawOpportunity."""
        if not isinstance(record, dict):
            raise TypeError(f"Expected record object, got {type(record).__name__}")

        place = record.get("placeOfPerformance") or {}
        state = (place.get("state") or {}) if isinstance(place, dict) else {}
        award = record.get("award") or {}

        return RawOpportunity(
            notice_id=record.get("noticeId"),
            title=record.get("title"),
            solicitation_number=record.get("solicitationNumber"),
            posted_date=record.get("postedDate"),
            response_deadline=record.get("responseDeadLine"),
            naics_code=record.get("naicsCode"),
            type=record.get("type"),
            url=record.get("uiLink") or record.get("additionalInfoLink") or _description_link(record),
            description=_description_text(record.get("description")),
            set_aside_type=record.get("typeOfSetAside") or record.get("typeOfSetAsideDescription"),
            place_of_performance_state=state.get("code") if isinstance(state, dict) else None,
            award_amount=_parse_amount(award.get("amount") if isinstance(award, dict) else None),
        )


def _is_link(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower().startswith(("http://", "https://"))


def _description_text(value: Any) -> Optional[str]:
    """
    Description text, or None when SAM.gov only returns a link.

    The search API puts a ``noticedesc`` URL in ``description``; the text
    itself needs a second authenticated request.
    """
    if value is None or _is_link(value):
        return None
    return value


def _description_link(record: Dict[str, Any]) -> Optional[str]:
    value = record.get("description")
    return value.strip() if _is_link(value) else None


def _parse_amount(value: Any) -> Optional[Decimal]:
    """Parse an award amount such as ``"1250000.00"``; unparseable values are dropped."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value).replace(",", "").replace("$", "").strip())
    except InvalidOperation:
        logger.warning(
            "Ignoring unparseable award amount",
            extra={"event": "fetcher.amount.unparseable", "value": str(value)},
        )
        return None
