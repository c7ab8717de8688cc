import pandas as pd
import pytest
import requests

from fetchers import DataUnavailableError, FredSeriesLoader, get_series_loader


class _FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class _FakeSession:
    """Returns a canned response per FRED series id and records the calls."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {}), timeout))
        return self.responses[params["series_id"]]


def _observations(start, n, value=1.0, step=0.1):
    dates = pd.date_range(start, periods=n, freq="MS")
    return {"observations": [{"date": d.strftime("%Y-%m-%d"), "value": str(value + i * step)}
                             for i, d in enumerate(dates)]}


def test_fetch_series_parses_observations():
    payload = _observations("2000-01-01", 4)
    payload["observations"][2]["value"] = "."
    session = _FakeSession({"PCEPI": _FakeResponse(payload)})
    loader = FredSeriesLoader(api_key="k", session=session, timeout=5.0)

    s = loader.fetch_series("PCEPI", "2000-01-01", "2000-04-01")

    assert s.name == "PCEPI"
    assert list(s.index) == [pd.Timestamp("2000-01-01"), pd.Timestamp("2000-02-01"), pd.Timestamp("2000-04-01")]
    url, params, timeout = session.calls[0]
    assert params["frequency"] == "m"
    assert params["observation_start"] == "2000-01-01"
    assert timeout == 5.0


def test_fetch_series_requires_api_key():
    loader = FredSeriesLoader(api_key=None, session=_FakeSession({}))
    with pytest.raises(DataUnavailableError, match="API key"):
        loader.fetch_series("PCEPI", "2000-01-01", "2000-12-01")


def test_fetch_series_wraps_http_and_payload_errors():
    session = _FakeSession({
        "BAD": _FakeResponse({}, status_code=500),
        "EMPTY": _FakeResponse({"observations": []}),
        "JUNK": _FakeResponse(ValueError("not json")),
    })
    loader = FredSeriesLoader(api_key="k", session=session)

    for series_id in ("BAD", "EMPTY", "JUNK"):
        with pytest.raises(DataUnavailableError) as info:
            loader.fetch_series(series_id, "2000-01-01", "2000-12-01")
        assert info.value.series_id == series_id


def test_fetch_frame_aligns_series():
    session = _FakeSession({
        "PCEPI": _FakeResponse(_observations("2000-01-01", 6, 100.0)),
        "UNRATE": _FakeResponse(_observations("2000-01-01", 6, 5.0)),
    })
    loader = FredSeriesLoader(api_key="k", session=session)

    frame = loader.fetch_frame(["UNRATE", "PCEPI"], "2000-01-01", "2000-06-01")

    assert list(frame.columns) == ["PCEPI", "UNRATE"]
    assert len(frame) == 6
    assert frame.loc[pd.Timestamp("2000-03-01"), "UNRATE"] == pytest.approx(5.2)


def test_fetch_rejects_short_coverage():
    session = _FakeSession({"PCEPI": _FakeResponse(_observations("2000-03-01", 4, 100.0))})
    loader = FredSeriesLoader(api_key="k", session=session)
    with pytest.raises(DataUnavailableError, match="covers"):
        loader.fetch(["PCEPI"], "2000-01-01", "2000-06-01")


def test_fetch_frame_rejects_gaps():
    gappy = _observations("2000-01-01", 6, 100.0)
    del gappy["observations"][3]
    session = _FakeSession({"PCEPI": _FakeResponse(gappy)})
    loader = FredSeriesLoader(api_key="k", session=session)
    with pytest.raises(DataUnavailableError, match="gaps"):
        loader.fetch_frame(["PCEPI"], "2000-01-01", "2000-06-01")


def test_default_session_mounts_retry_adapter():
    loader = get_series_loader(api_key="k", retries=5, backoff_factor=0.1)
    adapter = loader.session.get_adapter("https://api.stlouisfed.org")
    assert adapter.max_retries.total == 5
    assert 503 in adapter.max_retries.status_forcelist
