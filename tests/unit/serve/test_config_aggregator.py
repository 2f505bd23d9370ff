"""Unit tests for the polling configuration aggregator."""

from __future__ import annotations

import json
import queue

import pytest

from core.config import ConfluxConfig
from core.errors import (
    ConfluxDecodeError,
    ConfluxLifecycleError,
    ConfluxMergeError,
    ConfluxProbeError,
)
from serve import config_aggregator
from serve.config_aggregator import ConfigAggregator, _next_tick_after, build_aggregator
from serve.snapshot_payload import AggregateSnapshot
from store.object_store import S3ObjectStore
from tests.fake_s3 import FakeS3Client, at
from tests.fixture_paths import fixture_bytes

_EXPECTED_TLS = {
    "tls": {
        "certificates": [
            {"certFile": "certpath", "keyFile": "keypath"},
            {"certFile": "/path/to/domain.cert", "keyFile": "/path/to/domain.key"},
            {"certFile": "/path/to/other-domain.cert", "keyFile": "/path/to/other-domain.key"},
        ],
        "additional": "somevalue",
    }
}


def _aggregator(fake_s3: FakeS3Client, interval: str = "1h") -> ConfigAggregator:
    fake_s3.put("someBucket", "huh.json", fixture_bytes("tls_primary.json"), at(10))
    fake_s3.put("someBucket", "f.yml", fixture_bytes("tls_domains.yaml"), at(10))
    config = ConfluxConfig.from_mapping(
        {
            "pollInterval": interval,
            "objects": [
                {"bucket": "someBucket", "key": "huh.json"},
                {"bucket": "someBucket", "key": "f.yml"},
            ],
        }
    )
    return build_aggregator(config, store=S3ObjectStore(fake_s3), name="test")


def test_first_pass_merges_json_then_yaml(fake_s3: FakeS3Client) -> None:
    """The first pass should fetch every source and merge in declared order."""
    aggregator = _aggregator(fake_s3)

    snapshot = aggregator.run_pass()

    assert json.loads(snapshot.marshal()) == _EXPECTED_TLS


def test_first_pass_skips_metadata_probes(fake_s3: FakeS3Client) -> None:
    """New trackers should be fetched without HEAD requests."""
    aggregator = _aggregator(fake_s3)

    aggregator.run_pass()

    assert (fake_s3.head_calls, len(fake_s3.get_calls)) == ([], 2)


def test_unchanged_pass_emits_nothing(fake_s3: FakeS3Client) -> None:
    """A pass with no newer timestamps should return no snapshot."""
    aggregator = _aggregator(fake_s3)
    aggregator.run_pass()

    snapshot = aggregator.run_pass()

    assert snapshot is None and len(fake_s3.get_calls) == 2


def test_changed_source_is_refetched_alone(fake_s3: FakeS3Client) -> None:
    """Only the changed source is fetched, but all sources are re-merged."""
    aggregator = _aggregator(fake_s3)
    aggregator.run_pass()
    fake_s3.put(
        "someBucket",
        "huh.json",
        '{"tls": {"certificates": [], "additional": "newvalue"}}',
        at(20),
    )

    snapshot = aggregator.run_pass()
    merged_tls = json.loads(snapshot.marshal())["tls"]

    assert (merged_tls["additional"], len(merged_tls["certificates"]), fake_s3.get_calls[2:]) == (
        "newvalue",
        2,
        [("someBucket", "huh.json")],
    )


def test_probe_failure_emits_failure_snapshot(fake_s3: FakeS3Client) -> None:
    """A failed HEAD should abort the pass without fetching anything."""
    aggregator = _aggregator(fake_s3)
    aggregator.run_pass()
    fake_s3.put("someBucket", "f.yml", fixture_bytes("tls_domains.yaml"), at(30))
    fake_s3.fail_head("someBucket", "huh.json")

    snapshot = aggregator.run_pass()

    assert isinstance(snapshot.error, ConfluxProbeError) and len(fake_s3.get_calls) == 2


def test_probe_failure_does_not_mutate_trackers(fake_s3: FakeS3Client) -> None:
    """Probing happens for all sources before any source is re-fetched."""
    aggregator = _aggregator(fake_s3)
    aggregator.run_pass()
    before = [tracker.snapshot for tracker in aggregator.trackers]
    fake_s3.put("someBucket", "huh.json", '{"tls": {"additional": "x"}}', at(30))
    fake_s3.fail_head("someBucket", "f.yml")

    aggregator.run_pass()

    assert [tracker.snapshot for tracker in aggregator.trackers] == before


def test_malformed_source_fails_pass_and_keeps_cache(fake_s3: FakeS3Client) -> None:
    """A decode failure should name the source and keep its previous value."""
    aggregator = _aggregator(fake_s3)
    aggregator.run_pass()
    previous_value = aggregator.trackers[1].value
    fake_s3.put("someBucket", "f.yml", fixture_bytes("malformed.yaml"), at(40))

    snapshot = aggregator.run_pass()

    assert isinstance(snapshot.error, ConfluxDecodeError) and (
        "s3://someBucket/f.yml" in str(snapshot.error)
        and aggregator.trackers[1].value == previous_value
    )


def test_merge_failure_emits_failure_snapshot(
    fake_s3: FakeS3Client, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A merge error should become a failure snapshot rather than raise."""

    def _failing_merge(values: object) -> object:
        raise ConfluxMergeError("forced merge failure")

    monkeypatch.setattr(config_aggregator, "merge_values", _failing_merge)
    aggregator = _aggregator(fake_s3)

    snapshot = aggregator.run_pass()

    with pytest.raises(ConfluxMergeError, match="forced merge failure"):
        snapshot.marshal()


def test_start_twice_is_a_lifecycle_error(fake_s3: FakeS3Client) -> None:
    """An aggregator can only be started once."""
    aggregator = _aggregator(fake_s3)
    aggregator.start(queue.Queue())

    try:
        with pytest.raises(ConfluxLifecycleError):
            aggregator.start(queue.Queue())
    finally:
        aggregator.stop()

    assert aggregator.join(timeout=5)


def test_stop_before_start_is_a_lifecycle_error(fake_s3: FakeS3Client) -> None:
    """Stopping a created aggregator should fail."""
    aggregator = _aggregator(fake_s3)

    with pytest.raises(ConfluxLifecycleError):
        aggregator.stop()

    assert aggregator.state == "created"


def test_stop_twice_is_a_lifecycle_error(fake_s3: FakeS3Client) -> None:
    """A stopped aggregator cannot be stopped again or restarted."""
    aggregator = _aggregator(fake_s3)
    aggregator.start(queue.Queue())
    aggregator.stop()

    with pytest.raises(ConfluxLifecycleError):
        aggregator.stop()

    assert aggregator.join(timeout=5) and aggregator.state == "stopped"


def test_start_emits_first_pass_immediately(fake_s3: FakeS3Client) -> None:
    """The first pass should run right away, not after one interval."""
    aggregator = _aggregator(fake_s3, interval="1h")
    sink: queue.Queue[AggregateSnapshot] = queue.Queue()

    aggregator.start(sink)
    snapshot = sink.get(timeout=5)
    aggregator.stop()

    assert json.loads(snapshot.marshal()) == _EXPECTED_TLS and aggregator.join(timeout=5)


def test_loop_survives_unparseable_number_and_recovers(fake_s3: FakeS3Client) -> None:
    """A bad number-tagged scalar should fail one pass and leave the loop polling."""
    aggregator = _aggregator(fake_s3, interval="50ms")
    fake_s3.put("someBucket", "f.yml", 'tls:\n  additional: !!int ""\n', at(20))
    sink: queue.Queue[AggregateSnapshot] = queue.Queue()

    aggregator.start(sink)
    failure = sink.get(timeout=5)
    fake_s3.put("someBucket", "f.yml", "tls:\n  additional: fixed\n", at(30))
    recovered = sink.get(timeout=5)
    while recovered.failed:
        recovered = sink.get(timeout=5)
    aggregator.stop()

    assert isinstance(failure.error, ConfluxDecodeError) and (
        json.loads(recovered.marshal())["tls"]["additional"] == "fixed"
        and aggregator.join(timeout=5)
    )


def test_stop_releases_loop_blocked_on_full_sink(fake_s3: FakeS3Client) -> None:
    """A loop waiting on a full sink should exit once stopped."""
    aggregator = _aggregator(fake_s3)
    sink: queue.Queue[AggregateSnapshot] = queue.Queue(maxsize=1)
    sink.put(AggregateSnapshot(value={}))

    aggregator.start(sink)
    aggregator.stop()

    assert aggregator.join(timeout=5) and sink.qsize() == 1


def test_unexpected_loop_error_ends_thread_without_raising(
    fake_s3: FakeS3Client, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Unexpected exceptions should be contained at the thread boundary."""
    aggregator = _aggregator(fake_s3)

    def _crash() -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(aggregator, "run_pass", _crash)
    sink: queue.Queue[AggregateSnapshot] = queue.Queue()

    aggregator.start(sink)

    assert aggregator.join(timeout=5) and sink.empty()


def test_next_tick_after_skips_missed_intervals() -> None:
    """A pass longer than the interval should drop the ticks it overran."""
    assert _next_tick_after(previous_tick=0.0, interval=1.0, now=3.5) == 4.0
