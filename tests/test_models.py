import pytest
from datetime import date
from decimal import Decimal
from acc_platform import models as m


@pytest.fixture(scope="function")
def instructor_id(db_session):
    tc = m.TrainingCenter(name="Center", email="center@example.com")
    db_session.add(tc)
    db_session.flush()
    acc = m.Acc(name="ACC", email="acc@example.com")
    db_session.add(acc)
    db_session.flush()
    db_session.add(
        m.Course(course_id=1, acc_id=acc.acc_id, name="First Aid", code="FA")
    )
    instructor = m.Instructor(
        training_center_id=tc.training_center_id,
        first_name="John",
        last_name="Smith",
        email="john@example.com",
    )
    db_session.add(instructor)
    db_session.commit()
    return instructor.instructor_id


def _create_certificate(db_session, n, **kwargs):
    training_center_id = m.TrainingCenter.query.one().training_center_id
    certificate = m.Certificate(
        certificate_number=f"CERT-{n}",
        verification_code=f"VC-{n}",
        course_id=1,
        training_center_id=training_center_id,
        issue_date=date(2024, 1, 1),
        **kwargs,
    )
    db_session.add(certificate)
    db_session.commit()
    return certificate.certificate_id


def test_determine_certificate_type(db_session, instructor_id):
    assert m.determine_certificate_type(
        instructor_id, " smith  JOHN "
    ) == "instructor"
    assert m.determine_certificate_type(instructor_id, "Jane Doe") == (
        "trainee"
    )
    assert m.determine_certificate_type(None, "John Smith") == "trainee"
    assert m.determine_certificate_type(instructor_id, "") == "trainee"
    assert m.determine_certificate_type(
        instructor_id + 1000, "John Smith"
    ) == "trainee"


def test_certificate_type_set_on_insert(db_session, instructor_id):
    c1 = _create_certificate(
        db_session, 1, instructor_id=instructor_id, trainee_name="John Smith"
    )
    c2 = _create_certificate(
        db_session, 2, instructor_id=instructor_id, trainee_name="Jane Doe"
    )
    c3 = _create_certificate(db_session, 3, trainee_name="John Smith")
    c4 = _create_certificate(
        db_session,
        4,
        instructor_id=instructor_id,
        trainee_name="Jane Doe",
        type="instructor",
    )
    assert db_session.get(m.Certificate, c1).type == "instructor"
    assert db_session.get(m.Certificate, c2).type == "trainee"
    assert db_session.get(m.Certificate, c3).type == "trainee"
    assert db_session.get(m.Certificate, c4).type == "instructor"


def test_certificate_type_set_on_update(db_session, instructor_id):
    certificate_id = _create_certificate(
        db_session, 1, instructor_id=instructor_id, trainee_name="Jane Doe"
    )
    certificate = db_session.get(m.Certificate, certificate_id)
    assert certificate.type == "trainee"

    certificate.trainee_name = "Smith John"
    db_session.commit()
    certificate = db_session.get(m.Certificate, certificate_id)
    assert certificate.type == "instructor"

    # A manual override survives changes to other columns.
    certificate.type = "trainee"
    db_session.commit()
    certificate = db_session.get(m.Certificate, certificate_id)
    certificate.certificate_pdf_url = "https://example.com/cert.pdf"
    db_session.commit()
    certificate = db_session.get(m.Certificate, certificate_id)
    assert certificate.type == "trainee"

    # Changing the instructor triggers a recalculation.
    certificate.instructor_id = None
    db_session.commit()
    certificate = db_session.get(m.Certificate, certificate_id)
    assert certificate.type == "trainee"
    certificate.instructor_id = instructor_id
    db_session.commit()
    certificate = db_session.get(m.Certificate, certificate_id)
    assert certificate.type == "instructor"

    # A type which has been cleared gets recalculated on save.
    certificate.type = None
    certificate.certificate_pdf_url = None
    db_session.commit()
    certificate = db_session.get(m.Certificate, certificate_id)
    assert certificate.type == "instructor"


def test_transfer_can_retry():
    t = m.Transfer(status="failed", retry_count=0)
    assert t.can_retry
    t.retry_count = m.MAX_AUTOMATIC_RETRIES - 1
    assert t.can_retry
    t.retry_count = m.MAX_AUTOMATIC_RETRIES
    assert not t.can_retry

    for status in ["pending", "processing", "completed", "retrying"]:
        assert not m.Transfer(status=status, retry_count=0).can_retry


def test_transfer_transitions(current_ts):
    t = m.Transfer(
        status="pending",
        retry_count=0,
        gross_amount=Decimal("100.00"),
        commission_amount=Decimal("15.00"),
        net_amount=Decimal("85.00"),
    )
    t.mark_as_processing(current_ts)
    assert t.status == "processing"
    assert t.processed_at == current_ts

    t.mark_as_failed("Insufficient funds", current_ts)
    assert t.status == "failed"
    assert t.retry_count == 1
    assert t.error_message == "Insufficient funds"
    assert t.failed_at == current_ts
    assert t.can_retry

    t.mark_as_retrying()
    assert t.status == "retrying"
    assert t.retry_count == 1

    t.mark_as_processing(current_ts)
    t.mark_as_completed("tr_123", current_ts)
    assert t.status == "completed"
    assert t.stripe_transfer_id == "tr_123"
    assert t.error_message is None
    assert t.completed_at == current_ts
    assert t.retry_count == 1
    assert not t.can_retry


def test_signal_messages(app, current_ts):
    s = m.RetryTransferSignal(
        transfer_id=5, base_delay_seconds=60, inserted_at=current_ts
    )
    message = s._create_message()
    assert message.exchange == ""
    assert message.routing_key == app.config["CHORES_BROKER_QUEUE"]
    assert message.properties.type == "RetryTransfer"
    assert message.properties.content_type == "application/json"
    assert message.mandatory
    assert b'"transfer_id":5' in message.body
    assert b'"base_delay_seconds":60' in message.body

    s = m.PayoutTransactionSignal(transaction_id=7, inserted_at=current_ts)
    message = s._create_message()
    assert message.properties.type == "PayoutTransaction"
    assert b'"transaction_id":7' in message.body
