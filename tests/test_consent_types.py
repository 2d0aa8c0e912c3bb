"""
Tests for consent documents and the per-attempt consent state.
"""

from datetime import datetime, timedelta

import pytest

from logingate.consent import (
    AcceptedState, ConsentDocument, ConsentWorkflowState, DocumentKey, DOCUMENT_ORDER
)
from logingate.errors import ConsentStateError, InternalInconsistencyError


NOW = datetime(2024, 6, 1, 12, 0, 0)
VERSION = datetime(2024, 1, 1)


def make_document(key="tandc", link="http://docs/x", version_date=VERSION,
                  last_accepted=None, required_seconds=10, **kwargs):
    return ConsentDocument(
        key=key,
        display_type=DocumentKey(key).display_type if key in ("tandc", "ause", "dpriv") else "Other",
        reference_link=link,
        version_date=version_date,
        last_accepted=last_accepted,
        required_seconds=required_seconds,
        now=NOW,
        **kwargs
    )


def make_state(**accepted):
    return ConsentWorkflowState(**{
        key.value: make_document(key.value, last_accepted=accepted.get(key.value))
        for key in DOCUMENT_ORDER
    })


class TestConsentDocument:
    """Test the acceptance status of one document"""

    def test_never_accepted(self):
        assert make_document().status() == AcceptedState.NOT_ACCEPTED
        assert make_document().needs_accepting()

    def test_accepted_after_version(self):
        document = make_document(last_accepted=datetime(2024, 2, 1))
        assert document.status() == AcceptedState.ACCEPTED
        assert not document.needs_accepting()

    def test_accepted_on_version_day(self):
        document = make_document(last_accepted=VERSION)
        assert document.status() == AcceptedState.ACCEPTED

    def test_new_version(self):
        document = make_document(version_date=datetime(2024, 3, 1),
                                 last_accepted=datetime(2024, 2, 1))
        assert document.status() == AcceptedState.NEW_VERSION
        assert document.needs_accepting()

    def test_no_version_date(self):
        document = make_document(version_date=None, last_accepted=datetime(2020, 1, 1))
        assert document.status() == AcceptedState.ACCEPTED

    def test_not_required_without_link(self):
        assert make_document(link=None).status() == AcceptedState.ACCEPTED
        assert make_document(link="").status() == AcceptedState.ACCEPTED

    def test_version_date_truncated_to_midnight(self):
        document = make_document(version_date=datetime(2024, 1, 1, 15, 30))
        assert document.version_date == datetime(2024, 1, 1)

    def test_future_timestamps_clamped(self):
        future = NOW + timedelta(days=3)
        document = make_document(version_date=future, last_accepted=future, started_at=future)
        assert document.version_date == datetime(2024, 6, 1)
        assert document.last_accepted == NOW
        assert document.started_at == NOW

    def test_document_key_enum_accepted(self):
        document = ConsentDocument(DocumentKey.AUSE, "Acceptable Use Policy", now=NOW)
        assert document.key == "ause"

    @pytest.mark.parametrize("kwargs", [
        {"key": "other"},
        {"required_seconds": -1},
    ])
    def test_invalid_documents(self, kwargs):
        with pytest.raises(InternalInconsistencyError):
            make_document(**kwargs)

    def test_missing_display_type(self):
        with pytest.raises(InternalInconsistencyError):
            ConsentDocument(key="tandc", display_type=None)

    def test_timer(self):
        document = make_document()
        assert not document.has_started()
        assert document.elapsed_seconds(NOW) == 0

        document.start(NOW)
        assert document.has_started()
        assert document.elapsed_seconds(NOW + timedelta(seconds=7, milliseconds=900)) == 7

    def test_accept(self):
        document = make_document()
        document.accept(NOW)
        assert document.last_accepted == NOW
        assert document.status() == AcceptedState.ACCEPTED

    def test_dict_round_trip(self):
        document = make_document(last_accepted=datetime(2024, 2, 1, 9, 15, 0, 123456))
        document.start(NOW)

        restored = ConsentDocument.from_dict(document.to_dict(), now=NOW)
        assert restored == document

    def test_from_dict_malformed(self):
        with pytest.raises(InternalInconsistencyError):
            ConsentDocument.from_dict({"key": "tandc"})
        with pytest.raises(InternalInconsistencyError):
            ConsentDocument.from_dict({"key": "tandc", "display_type": "x", "started_at": "soon"})


class TestConsentWorkflowState:
    """Test ordering, timers and serialisation of the consent state"""

    def test_documents_in_order(self):
        state = make_state()
        assert [d.key for d in state.documents] == ["tandc", "ause", "dpriv"]

    def test_next_to_accept_follows_order(self):
        state = make_state(tandc=datetime(2024, 2, 1))
        assert state.next_to_accept(NOW).key == "ause"

    def test_next_to_accept_none_when_done(self):
        accepted = datetime(2024, 2, 1)
        state = make_state(tandc=accepted, ause=accepted, dpriv=accepted)
        assert state.next_to_accept(NOW) is None

    def test_next_to_accept_starts_timer_once(self):
        state = make_state()
        first = state.next_to_accept(NOW)
        assert first.started_at == NOW

        again = state.next_to_accept(NOW + timedelta(seconds=30))
        assert again is first
        assert again.started_at == NOW

    def test_accept_advances(self):
        state = make_state()
        document = state.next_to_accept(NOW)
        state.accept(document, NOW)
        assert state.next_to_accept(NOW).key == "ause"

    def test_accept_unknown_key(self):
        state = make_state()
        stranger = make_document()
        stranger.key = "other"
        with pytest.raises(InternalInconsistencyError):
            state.accept(stranger, NOW)

    def test_round_trip_preserves_status(self):
        state = make_state(tandc=datetime(2024, 2, 1))
        state.next_to_accept(NOW)

        restored = ConsentWorkflowState.from_string(state.to_string(), now=NOW)

        assert restored.statuses() == state.statuses()
        assert restored.ause.started_at == NOW
        assert restored.to_dict() == state.to_dict()

    def test_wrong_slot_rejected(self):
        with pytest.raises(InternalInconsistencyError):
            ConsentWorkflowState(
                tandc=make_document("ause"),
                ause=make_document("ause"),
                dpriv=make_document("dpriv")
            )

    @pytest.mark.parametrize("blob", [
        None,
        "",
        "not json",
        "[]",
        '{"tandc": {}}',
        '{"tandc": {"key": "tandc", "display_type": "x"}}',
    ])
    def test_malformed_blob(self, blob):
        with pytest.raises(ConsentStateError):
            ConsentWorkflowState.from_string(blob, now=NOW)

    def test_blob_with_swapped_documents(self):
        state = make_state()
        data = state.to_dict()
        data["tandc"], data["ause"] = data["ause"], data["tandc"]

        with pytest.raises(ConsentStateError):
            ConsentWorkflowState.from_dict(data, now=NOW)
