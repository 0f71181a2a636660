"""
World Development Indicators (WDI) acquisition with a flat-file cache.

Downloads a country-year panel of indicator series from the World Bank
v2 JSON API, pivots it to one row per (country, year) with one column per
indicator code, and attaches country metadata (region, income group).

Cache semantics: if the cache file exists it is read and the network is
never contacted. This is a presence check, not a freshness check; delete
the file to force a new download. A failed download with no cache is
fatal and is not retried.
"""

import os

import numpy as np
import pandas as pd
import requests

from growth_analysis import config
from growth_analysis.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)

# Column order of the raw panel, matching the layout of earlier cache files.
META_COLUMNS = ["region", "capital", "longitude", "latitude", "income", "lending"]
KEY_COLUMNS = ["country", "iso2c", "iso3c", "year"]


class WDIResponseError(ValueError):
    """The WDI API answered, but not with a usable payload."""


def make_session(user_agent=None):
    """Create a requests.Session for the WDI API.

    No retry adapter is mounted: a failed request surfaces immediately.

    Parameters
    ----------
    user_agent : str, optional
        User-Agent header value. Default: config.USER_AGENT.

    Returns
    -------
    requests.Session
    """
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent or config.USER_AGENT})
    return session


def _get_page(session, url, params):
    """GET one API page and return its (metadata, records) pair."""
    response = session.get(url, params=params, timeout=config.HTTP_TIMEOUT_SECONDS)
    response.raise_for_status()
    try:
        payload = response.json()
    except ValueError as exc:
        raise WDIResponseError(f"Non-JSON response from {url}") from exc

    # Errors come back as HTTP 200 with a single {"message": [...]} element.
    if isinstance(payload, list) and len(payload) == 1 and isinstance(payload[0], dict):
        messages = payload[0].get("message") or []
        text = "; ".join(
            f"{m.get('key', '')}: {m.get('value', '')}" for m in messages
        )
        raise WDIResponseError(f"WDI API error for {url}: {text or payload[0]}")

    if not isinstance(payload, list) or len(payload) != 2:
        raise WDIResponseError(f"Unexpected WDI payload shape from {url}")

    metadata, records = payload
    return metadata or {}, records or []


def _iter_pages(session, url, params):
    """Yield the record list of every page of a paginated WDI query."""
    page = 1
    total_pages = None

    while total_pages is None or page <= total_pages:
        metadata, records = _get_page(session, url, {**params, "page": page})
        if total_pages is None:
            total_pages = int(metadata.get("pages") or 0)
            log.debug("%s: %d page(s)", url, total_pages)
        yield records
        page += 1


def fetch_indicator(session, code, start_year, end_year):
    """Fetch one indicator for every economy over a year range.

    Parameters
    ----------
    session : requests.Session
    code : str
        WDI indicator code, e.g. ``"NY.GDP.MKTP.KD.ZG"``.
    start_year, end_year : int
        Inclusive year range.

    Returns
    -------
    pd.DataFrame
        Long format: iso2c, iso3c, country, year, indicator, value.
    """
    url = f"{config.WDI_API_URL}/country/all/indicator/{code}"
    params = {
        "format": "json",
        "date": f"{start_year}:{end_year}",
        "per_page": config.WDI_PER_PAGE,
    }

    rows = []
    for records in _iter_pages(session, url, params):
        for entry in records:
            country = entry.get("country") or {}
            try:
                year = int(entry.get("date"))
            except (TypeError, ValueError):
                continue
            rows.append({
                "iso2c": country.get("id"),
                "iso3c": entry.get("countryiso3code") or None,
                "country": country.get("value"),
                "year": year,
                "indicator": code,
                "value": entry.get("value"),
            })

    log.info("Fetched %s: %d observations", code, len(rows))
    df = pd.DataFrame(
        rows, columns=["iso2c", "iso3c", "country", "year", "indicator", "value"]
    )
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    return df


def _to_float(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return np.nan


def fetch_country_metadata(session):
    """Fetch region, income group and other attributes of every economy.

    Aggregates (World, regional and income groupings) carry the region
    label ``config.AGGREGATE_REGION_LABEL``; their region and income are
    set to missing so cleaning drops them with other unclassified rows.

    Returns
    -------
    pd.DataFrame
        Columns: iso3c, iso2c, region, capital, longitude, latitude,
        income, lending.
    """
    url = f"{config.WDI_API_URL}/country"
    params = {"format": "json", "per_page": 1000}

    rows = []
    for records in _iter_pages(session, url, params):
        for entry in records:
            region = ((entry.get("region") or {}).get("value") or "").strip()
            income = ((entry.get("incomeLevel") or {}).get("value") or "").strip()
            lending = ((entry.get("lendingType") or {}).get("value") or "").strip()
            if region == config.AGGREGATE_REGION_LABEL:
                region, income, lending = "", "", ""
            rows.append({
                "iso3c": entry.get("id"),
                "iso2c": entry.get("iso2Code"),
                "region": region or None,
                "capital": entry.get("capitalCity") or None,
                "longitude": _to_float(entry.get("longitude")),
                "latitude": _to_float(entry.get("latitude")),
                "income": income or None,
                "lending": lending or None,
            })

    log.info("Fetched metadata for %d economies", len(rows))
    return pd.DataFrame(
        rows,
        columns=["iso3c", "iso2c", "region", "capital", "longitude",
                 "latitude", "income", "lending"],
    )


def fetch_wdi_panel(indicators=None, start_year=None, end_year=None, session=None):
    """Download the indicator panel and pivot it to one row per country-year.

    Parameters
    ----------
    indicators : list[str], optional
        Indicator codes. Default: keys of config.INDICATORS.
    start_year, end_year : int, optional
        Default: config.START_YEAR / config.END_YEAR.
    session : requests.Session, optional
        Default: a new session from make_session().

    Returns
    -------
    pd.DataFrame
        Columns: country, iso2c, iso3c, year, <indicator codes...>,
        region, capital, longitude, latitude, income, lending.
    """
    if indicators is None:
        indicators = list(config.INDICATORS)
    if start_year is None:
        start_year = config.START_YEAR
    if end_year is None:
        end_year = config.END_YEAR
    if session is None:
        session = make_session()

    long_df = pd.concat(
        [fetch_indicator(session, code, start_year, end_year) for code in indicators],
        ignore_index=True,
    )
    if long_df.empty:
        raise WDIResponseError(
            f"No observations returned for {indicators} in {start_year}-{end_year}"
        )

    # Aggregates without an ISO3 code would collapse onto one key.
    long_df["iso3c"] = long_df["iso3c"].fillna(long_df["iso2c"])

    wide = (
        long_df.set_index(["country", "iso2c", "iso3c", "year", "indicator"])["value"]
        .unstack("indicator")
        .reindex(columns=indicators)
        .reset_index()
    )
    wide.columns.name = None

    meta = fetch_country_metadata(session).drop(columns=["iso2c"])
    panel = wide.merge(meta, on="iso3c", how="left", validate="many_to_one")
    panel = panel[KEY_COLUMNS + list(indicators) + META_COLUMNS]
    panel = panel.sort_values(["country", "year"], kind="mergesort").reset_index(drop=True)

    log.info(
        "WDI panel: %d rows, %d economies, years %d-%d",
        len(panel), panel["iso3c"].nunique(), start_year, end_year,
    )
    return panel


def read_raw_csv(path):
    """Read a raw WDI cache file.

    Caches written by R's readr store missing values as the literal "NA",
    ours leave the field empty; both are missing everywhere except in
    iso2c, where "NA" is Namibia.
    """
    columns = pd.read_csv(path, nrows=0).columns
    na_values = {
        col: [""] if col == "iso2c" else ["", "NA"]
        for col in columns
    }
    return pd.read_csv(path, keep_default_na=False, na_values=na_values)


def load_or_fetch_panel(cache_path, indicators=None, start_year=None,
                        end_year=None, fetcher=None):
    """Return the raw panel, downloading it only if the cache file is absent.

    Parameters
    ----------
    cache_path : str
        CSV cache location. Its presence alone skips the download.
    indicators, start_year, end_year
        Passed to the fetcher when the cache is absent.
    fetcher : callable, optional
        ``fetcher(indicators, start_year, end_year) -> DataFrame``.
        Default: fetch_wdi_panel.

    Returns
    -------
    pd.DataFrame
    """
    if os.path.exists(cache_path):
        log.info("Reading cached WDI panel: %s", cache_path)
        return read_raw_csv(cache_path)

    log.info("No cache at %s; downloading WDI panel", cache_path)
    fetcher = fetcher or fetch_wdi_panel
    panel = fetcher(indicators, start_year, end_year)

    cache_dir = os.path.dirname(cache_path)
    if cache_dir:
        os.makedirs(cache_dir, exist_ok=True)
    panel.to_csv(cache_path, index=False)
    log.info("Cached WDI panel: %s (%d rows)", cache_path, len(panel))
    return panel


def load_or_write_cross_section(panel, cache_path, year):
    """Return the raw rows of one year, caching them on first use.

    Same presence-only semantics as load_or_fetch_panel(): an existing file
    is returned as-is even if the panel has changed since.
    """
    if os.path.exists(cache_path):
        log.info("Reading cached cross-section: %s", cache_path)
        return read_raw_csv(cache_path)

    cross = panel[panel["year"] == year].reset_index(drop=True)
    cache_dir = os.path.dirname(cache_path)
    if cache_dir:
        os.makedirs(cache_dir, exist_ok=True)
    cross.to_csv(cache_path, index=False)
    log.info("Cached %d cross-section rows for %d: %s", len(cross), year, cache_path)
    return cross
