import pytest
from datetime import date, timedelta
from decimal import Decimal
from sqlalchemy import update
from acc_platform import models as m
from acc_platform import procedures as p


def _naive(ts):
    return ts.replace(tzinfo=None)


@pytest.fixture(scope="function")
def acc_id(db_session):
    acc = m.Acc(
        name="ACC",
        email="acc@example.com",
        status="active",
        commission_percentage=Decimal("80.00"),
        stripe_account_id="acct_acc",
    )
    db_session.add(acc)
    db_session.commit()
    return acc.acc_id


@pytest.fixture(scope="function")
def center_id(db_session):
    tc = m.TrainingCenter(name="Center", email="center@example.com")
    db_session.add(tc)
    db_session.commit()
    return tc.training_center_id


@pytest.fixture(scope="function")
def course_id(db_session, acc_id):
    course = m.Course(acc_id=acc_id, name="First Aid", code="FA")
    db_session.add(course)
    db_session.commit()
    return course.course_id


@pytest.fixture(scope="function")
def instructor_id(db_session, center_id):
    instructor = m.Instructor(
        training_center_id=center_id,
        first_name="John",
        last_name="Smith",
        email="john@example.com",
    )
    db_session.add(instructor)
    db_session.commit()
    return instructor.instructor_id


def _create_transaction(db_session, **kwargs):
    params = dict(
        transaction_type="course_purchase",
        payer_type="training_center",
        payer_id=1,
        payee_type="acc",
        payee_id=1,
        amount=Decimal("100.00"),
        status="completed",
    )
    params.update(kwargs)
    transaction = m.Transaction(**params)
    db_session.add(transaction)
    db_session.commit()
    return transaction.transaction_id


def _create_transfer(db_session, **kwargs):
    params = dict(
        transaction_id=_create_transaction(db_session),
        payee_type="acc",
        payee_id=1,
        gross_amount=Decimal("100.00"),
        commission_amount=Decimal("15.00"),
        net_amount=Decimal("85.00"),
        stripe_account_id="acct_123",
        status="pending",
        retry_count=0,
    )
    params.update(kwargs)
    transfer = m.Transfer(**params)
    db_session.add(transfer)
    db_session.commit()
    return transfer.transfer_id


def _create_user(db_session, email, role):
    user = m.User(name=email, email=email, role=role)
    db_session.add(user)
    db_session.commit()
    return user.user_id


def _create_certificate(db_session, n, course_id, center_id, **kwargs):
    certificate = m.Certificate(
        certificate_number=f"CERT-{n}",
        verification_code=f"VC-{n}",
        course_id=course_id,
        training_center_id=center_id,
        issue_date=date(2024, 1, 1),
        **kwargs,
    )
    db_session.add(certificate)
    db_session.commit()
    return certificate.certificate_id


def test_suspend_accs_with_expired_subscriptions(db_session, current_date):
    yesterday = current_date - timedelta(days=1)

    def create_acc(n, subscriptions, status="active"):
        acc = m.Acc(
            name=f"ACC {n}", email=f"acc{n}@example.com", status=status
        )
        db_session.add(acc)
        db_session.flush()
        for end_date, payment_status in subscriptions:
            db_session.add(
                m.AccSubscription(
                    acc_id=acc.acc_id,
                    subscription_start_date=date(2023, 1, 1),
                    subscription_end_date=end_date,
                    payment_status=payment_status,
                )
            )
        db_session.commit()
        return acc.acc_id

    expired = create_acc(1, [(yesterday, "paid")])
    ends_today = create_acc(2, [(current_date, "paid")])
    renewed = create_acc(
        3, [(yesterday, "paid"), (date(2025, 1, 1), "paid")]
    )
    unpaid = create_acc(4, [(yesterday, "pending")])
    suspended = create_acc(5, [(yesterday, "paid")], status="suspended")
    no_subscriptions = create_acc(6, [])
    admin_id = _create_user(db_session, "acc1@example.com", "acc_admin")
    other_user_id = _create_user(db_session, "acc2@example.com", "acc_admin")

    assert p.suspend_accs_with_expired_subscriptions(current_date) == 1

    def status(acc_id):
        return db_session.get(m.Acc, acc_id).status

    assert status(expired) == "suspended"
    assert status(ends_today) == "active"
    assert status(renewed) == "active"
    assert status(unpaid) == "active"
    assert status(suspended) == "suspended"
    assert status(no_subscriptions) == "active"
    assert db_session.get(m.User, admin_id).status == "suspended"
    assert db_session.get(m.User, other_user_id).status == "active"

    assert p.suspend_accs_with_expired_subscriptions(current_date) == 0


def test_update_discount_code_statuses(db_session, acc_id, current_date):
    yesterday = current_date - timedelta(days=1)

    def create_code(code, **kwargs):
        discount_code = m.DiscountCode(
            acc_id=acc_id,
            code=code,
            discount_percentage=Decimal("10.00"),
            **kwargs,
        )
        db_session.add(discount_code)
        db_session.commit()
        return discount_code.discount_code_id

    expired = create_code("EXPIRED", end_date=yesterday)
    ends_today = create_code("TODAY", end_date=current_date)
    depleted = create_code(
        "DEPLETED",
        discount_type="quantity_based",
        total_quantity=10,
        used_quantity=10,
    )
    both = create_code(
        "BOTH", end_date=yesterday, total_quantity=5, used_quantity=5
    )
    unlimited = create_code("UNLIMITED", used_quantity=100)
    inactive = create_code("INACTIVE", end_date=yesterday, status="inactive")

    assert p.update_discount_code_statuses(current_date) == 3

    def status(discount_code_id):
        return db_session.get(m.DiscountCode, discount_code_id).status

    assert status(expired) == "expired"
    assert status(ends_today) == "active"
    assert status(depleted) == "depleted"
    assert status(both) == "expired"
    assert status(unlimited) == "active"
    assert status(inactive) == "inactive"

    assert p.update_discount_code_statuses(current_date) == 0


def _create_training_class(db_session, center_id, course_id, **kwargs):
    training_class = m.TrainingClass(
        training_center_id=center_id, course_id=course_id, **kwargs
    )
    db_session.add(training_class)
    db_session.commit()
    return training_class.training_class_id


def test_update_training_class_statuses(
        db_session, center_id, course_id, current_date
):
    def create_class(start, end, status="scheduled"):
        return _create_training_class(
            db_session,
            center_id,
            course_id,
            start_date=start,
            end_date=end,
            status=status,
        )

    future = create_class(date(2024, 7, 1), date(2024, 7, 3))
    started = create_class(current_date, date(2024, 6, 20))
    finished = create_class(date(2024, 6, 1), date(2024, 6, 14))
    finished_in_progress = create_class(
        date(2024, 6, 1), date(2024, 6, 3), status="in_progress"
    )
    reopened = create_class(
        date(2024, 7, 1), date(2024, 7, 3), status="completed"
    )
    cancelled = create_class(
        date(2024, 6, 1), date(2024, 6, 3), status="cancelled"
    )
    undated = create_class(None, None)

    assert p.get_dated_training_class_ids() == [
        future,
        started,
        finished,
        finished_in_progress,
        reopened,
    ]
    assert p.update_training_class_statuses(current_date) == {
        "in_progress": 1,
        "completed": 2,
        "scheduled": 1,
    }

    def status(training_class_id):
        return db_session.get(m.TrainingClass, training_class_id).status

    assert status(future) == "scheduled"
    assert status(started) == "in_progress"
    assert status(finished) == "completed"
    assert status(finished_in_progress) == "completed"
    assert status(reopened) == "scheduled"
    assert status(cancelled) == "cancelled"
    assert status(undated) == "scheduled"

    assert p.update_training_class_statuses(current_date) == {}


def test_update_training_class_statuses_isolates_failures(
        mocker, db_session, center_id, course_id, current_date
):
    first = _create_training_class(
        db_session,
        center_id,
        course_id,
        start_date=date(2024, 6, 1),
        end_date=date(2024, 6, 3),
    )
    second = _create_training_class(
        db_session,
        center_id,
        course_id,
        start_date=date(2024, 6, 1),
        end_date=date(2024, 6, 3),
    )
    original = p.status_updates.update_training_class_status

    def update_status(training_class_id, current_date):
        if training_class_id == first:
            raise RuntimeError("database error")
        return original(training_class_id, current_date)

    mocker.patch(
        "acc_platform.procedures.status_updates.update_training_class_status",
        side_effect=update_status,
    )
    assert p.update_training_class_statuses(current_date) == {"completed": 1}
    assert db_session.get(m.TrainingClass, first).status == "scheduled"
    assert db_session.get(m.TrainingClass, second).status == "completed"


def test_update_training_class_status(
        db_session, center_id, course_id, current_date
):
    training_class_id = _create_training_class(
        db_session,
        center_id,
        course_id,
        start_date=date(2024, 6, 1),
        end_date=date(2024, 6, 3),
    )
    assert p.update_training_class_status(
        training_class_id, current_date
    ) == "completed"
    assert p.update_training_class_status(
        training_class_id, current_date
    ) is None
    assert p.update_training_class_status(
        training_class_id + 1000, current_date
    ) is None


def test_expire_certificates(
        db_session, center_id, course_id, current_date
):
    yesterday = current_date - timedelta(days=1)
    c1 = _create_certificate(
        db_session, 1, course_id, center_id,
        trainee_name="A", expiry_date=yesterday,
    )
    c2 = _create_certificate(
        db_session, 2, course_id, center_id,
        trainee_name="B", expiry_date=current_date,
    )
    c3 = _create_certificate(
        db_session, 3, course_id, center_id, trainee_name="C"
    )
    c4 = _create_certificate(
        db_session, 4, course_id, center_id,
        trainee_name="D", expiry_date=yesterday, status="revoked",
    )

    assert p.expire_certificates(current_date) == 1

    def status(certificate_id):
        return db_session.get(m.Certificate, certificate_id).status

    assert status(c1) == "expired"
    assert status(c2) == "valid"
    assert status(c3) == "valid"
    assert status(c4) == "revoked"

    assert p.expire_certificates(current_date) == 0


def test_set_certificate_type(
        db_session, center_id, course_id, instructor_id
):
    certificate_id = _create_certificate(
        db_session,
        1,
        course_id,
        center_id,
        instructor_id=instructor_id,
        trainee_name="Jane Doe",
    )

    with pytest.raises(ValueError):
        p.set_certificate_type(certificate_id, "student")

    assert p.set_certificate_type(certificate_id + 1000, "trainee") is None

    old_type, certificate = p.set_certificate_type(
        certificate_id, "instructor"
    )
    assert old_type == "trainee"
    assert certificate.type == "instructor"
    assert certificate.trainee_name == "Jane Doe"
    assert db_session.get(m.Certificate, certificate_id).type == "instructor"


def test_get_instructor_name(db_session, instructor_id):
    assert p.get_instructor_name(instructor_id) == "John Smith"
    assert p.get_instructor_name(instructor_id + 1000) is None


def test_backfill_certificate_types(
        db_session, center_id, course_id, instructor_id
):
    c1 = _create_certificate(
        db_session, 1, course_id, center_id,
        instructor_id=instructor_id, trainee_name="Smith John",
    )
    c2 = _create_certificate(
        db_session, 2, course_id, center_id,
        instructor_id=instructor_id, trainee_name="Jane Doe",
    )
    c3 = _create_certificate(
        db_session, 3, course_id, center_id, trainee_name="John Smith",
    )
    c4 = _create_certificate(
        db_session, 4, course_id, center_id, trainee_name="Jack Black",
    )

    # Bulk updates bypass the automatic classification.
    db_session.execute(
        update(m.Certificate)
        .where(m.Certificate.certificate_id == c1)
        .values(type="trainee")
    )
    db_session.execute(
        update(m.Certificate)
        .where(m.Certificate.certificate_id == c2)
        .values(type=None)
    )
    db_session.execute(
        update(m.Certificate)
        .where(m.Certificate.certificate_id == c3)
        .values(type="instructor")
    )
    db_session.commit()

    result = p.backfill_certificate_types()
    assert result == p.BackfillResult(
        total_count=4,
        updated_count=3,
        instructor_count=1,
        trainee_count=3,
    )

    def certificate_type(certificate_id):
        return db_session.get(m.Certificate, certificate_id).type

    assert certificate_type(c1) == "instructor"
    assert certificate_type(c2) == "trainee"
    assert certificate_type(c3) == "trainee"
    assert certificate_type(c4) == "trainee"

    assert p.backfill_certificate_types().updated_count == 0


def test_get_transfer(db_session):
    transfer_id = _create_transfer(db_session)
    transfer = p.get_transfer(transfer_id)
    assert transfer.transfer_id == transfer_id
    assert transfer.net_amount == Decimal("85.00")
    assert p.get_transfer(transfer_id + 1000) is None


def test_transfer_retries_backoff(db_session, current_ts):
    transfer_id = _create_transfer(db_session, status="processing")

    t = p.fail_transfer(transfer_id, "Insufficient funds", 60, current_ts)
    assert t.status == "failed"
    assert t.retry_count == 1
    assert t.error_message == "Insufficient funds"
    assert t.retry_scheduled_for == current_ts + timedelta(seconds=60)
    assert t.retry_base_delay == 60
    assert t.can_retry

    t = p.claim_transfer_for_retry(transfer_id)
    assert t.status == "retrying"
    assert t.retry_scheduled_for is None
    t = p.start_transfer_processing(transfer_id, current_ts)
    assert t.status == "processing"
    t = p.fail_transfer(transfer_id, "Insufficient funds", 60, current_ts)
    assert t.retry_count == 2
    assert t.retry_scheduled_for == current_ts + timedelta(seconds=120)

    assert p.claim_transfer_for_retry(transfer_id) is not None
    assert p.start_transfer_processing(transfer_id, current_ts) is not None
    t = p.fail_transfer(transfer_id, "Account closed", 60, current_ts)
    assert t.status == "failed"
    assert t.retry_count == m.MAX_AUTOMATIC_RETRIES
    assert t.error_message == "Account closed"
    assert t.retry_scheduled_for is None
    assert not t.can_retry

    assert p.claim_transfer_for_retry(transfer_id) is None

    t = db_session.get(m.Transfer, transfer_id)
    assert t.status == "failed"
    assert t.retry_count == 3
    assert t.retry_scheduled_for is None


def test_third_failure_schedules_no_retry(db_session, current_ts):
    # The automatic delays are 60s and 120s. The third failure is
    # final, so a 240s delay never gets scheduled.
    transfer_id = _create_transfer(
        db_session, status="processing", retry_count=2
    )

    t = p.fail_transfer(transfer_id, "Insufficient funds", 60, current_ts)
    assert t.status == "failed"
    assert t.retry_count == m.MAX_AUTOMATIC_RETRIES
    assert t.retry_scheduled_for is None
    assert t.retry_base_delay is None

    t = db_session.get(m.Transfer, transfer_id)
    assert t.retry_scheduled_for is None
    assert p.process_scheduled_transfer_retries_batch(
        10, current_ts + timedelta(seconds=240)
    ) == 0
    assert m.RetryTransferSignal.query.count() == 0


def test_transfer_state_guards(db_session, current_ts):
    transfer_id = _create_transfer(db_session)

    assert p.fail_transfer(transfer_id, "error", 60, current_ts) is None
    assert p.complete_transfer(transfer_id, "tr_1", current_ts) is None
    assert p.claim_transfer_for_retry(transfer_id) is None
    assert p.claim_transfer_for_retry(transfer_id + 1000) is None
    assert p.start_transfer_processing(transfer_id + 1000) is None

    assert p.start_transfer_processing(transfer_id, current_ts) is not None
    assert p.start_transfer_processing(transfer_id, current_ts) is None
    assert db_session.get(m.Transfer, transfer_id).status == "processing"


def test_complete_transfer(db_session, current_ts):
    user_id = _create_user(db_session, "acc@example.com", "acc_admin")
    transfer_id = _create_transfer(
        db_session,
        user_id=user_id,
        status="processing",
        retry_count=1,
        error_message="Insufficient funds",
    )

    t = p.complete_transfer(transfer_id, "tr_123", current_ts)
    assert t.status == "completed"
    assert t.stripe_transfer_id == "tr_123"
    assert t.error_message is None
    assert t.completed_at == current_ts

    t = db_session.get(m.Transfer, transfer_id)
    assert t.status == "completed"
    assert t.retry_count == 1
    assert _naive(t.completed_at) == _naive(current_ts)

    notifications = m.Notification.query.all()
    assert len(notifications) == 1
    n = notifications[0]
    assert n.user_id == user_id
    assert n.type == "transfer_completed"
    assert n.data["transfer_id"] == transfer_id
    assert n.data["amount"] == "85.00"
    assert not n.is_read


def test_complete_transfer_without_user(db_session, current_ts):
    transfer_id = _create_transfer(db_session, status="processing")
    assert p.complete_transfer(transfer_id, "tr_123", current_ts) is not None
    assert m.Notification.query.count() == 0


def test_handle_transfer_error(db_session, current_ts):
    transfer_id = _create_transfer(db_session, status="retrying")
    t = p.handle_transfer_error(transfer_id, "boom", 60, 300, current_ts)
    assert t.status == "failed"
    assert t.retry_count == 1
    assert t.error_message == "boom"
    assert t.retry_scheduled_for == current_ts + timedelta(seconds=300)
    assert t.retry_base_delay == 60

    # Already failed and scheduled.
    t = p.handle_transfer_error(transfer_id, "boom", 60, 300, current_ts)
    assert t.retry_count == 1

    transfer_id = _create_transfer(
        db_session, status="processing", retry_count=2
    )
    t = p.handle_transfer_error(transfer_id, "boom", 60, 300, current_ts)
    assert t.status == "failed"
    assert t.retry_count == 3
    assert t.retry_scheduled_for is None

    transfer_id = _create_transfer(db_session, status="completed")
    t = p.handle_transfer_error(transfer_id, "boom", 60, 300, current_ts)
    assert t.status == "completed"
    assert t.retry_count == 0
    assert t.retry_scheduled_for is None

    assert p.handle_transfer_error(
        transfer_id + 1000, "boom", 60, 300, current_ts
    ) is None


def test_schedule_transfer_retry_now(db_session, current_ts):
    transfer_id = _create_transfer(
        db_session,
        status="failed",
        retry_count=1,
        retry_scheduled_for=current_ts + timedelta(hours=1),
        retry_base_delay=60,
    )
    t = p.schedule_transfer_retry_now(transfer_id, 60, current_ts)
    assert t.transfer_id == transfer_id
    assert t.status == "failed"
    assert t.retry_scheduled_for is None

    signals = m.RetryTransferSignal.query.all()
    assert len(signals) == 1
    assert signals[0].transfer_id == transfer_id
    assert signals[0].base_delay_seconds == 60
    assert db_session.get(m.Transfer, transfer_id).retry_scheduled_for is None

    with pytest.raises(p.TransferDoesNotExist):
        p.schedule_transfer_retry_now(transfer_id + 1000, 60, current_ts)

    completed_id = _create_transfer(db_session, status="completed")
    with pytest.raises(p.TransferCanNotBeRetried):
        p.schedule_transfer_retry_now(completed_id, 60, current_ts)

    exhausted_id = _create_transfer(
        db_session, status="failed", retry_count=3
    )
    with pytest.raises(p.TransferCanNotBeRetried):
        p.schedule_transfer_retry_now(exhausted_id, 60, current_ts)

    assert m.RetryTransferSignal.query.count() == 1


def test_process_scheduled_transfer_retries_batch(db_session, current_ts):
    t1 = _create_transfer(
        db_session,
        status="failed",
        retry_count=1,
        retry_scheduled_for=current_ts - timedelta(seconds=10),
        retry_base_delay=60,
    )
    t2 = _create_transfer(
        db_session,
        status="failed",
        retry_count=2,
        retry_scheduled_for=current_ts - timedelta(seconds=5),
        retry_base_delay=120,
    )
    t3 = _create_transfer(
        db_session,
        status="failed",
        retry_count=1,
        retry_scheduled_for=current_ts + timedelta(hours=1),
        retry_base_delay=60,
    )

    assert p.process_scheduled_transfer_retries_batch(1, current_ts) == 1
    assert db_session.get(m.Transfer, t1).retry_scheduled_for is None
    assert db_session.get(m.Transfer, t2).retry_scheduled_for is not None
    assert p.process_scheduled_transfer_retries_batch(10, current_ts) == 1
    assert p.process_scheduled_transfer_retries_batch(10, current_ts) == 0

    signals = m.RetryTransferSignal.query.order_by(
        m.RetryTransferSignal.signal_id
    ).all()
    assert [(s.transfer_id, s.base_delay_seconds) for s in signals] == [
        (t1, 60),
        (t2, 120),
    ]
    assert db_session.get(m.Transfer, t2).retry_scheduled_for is None
    assert db_session.get(m.Transfer, t3).retry_scheduled_for is not None


def test_prepare_transaction_payout(db_session, acc_id, current_ts):
    user_id = _create_user(db_session, "acc@example.com", "acc_admin")
    transaction_id = _create_transaction(
        db_session, payee_type="acc", payee_id=acc_id, currency="EUR"
    )

    t = p.prepare_transaction_payout(transaction_id, 15.0, "USD", current_ts)
    assert t.transaction_id == transaction_id
    assert t.status == "pending"
    assert t.user_id == user_id
    assert t.payee_type == "acc"
    assert t.payee_id == acc_id
    assert t.stripe_account_id == "acct_acc"
    assert t.error_message is None
    assert t.currency == "EUR"

    # The ACC's share is 80%, so the platform's commission is 20%.
    t = db_session.get(m.Transfer, t.transfer_id)
    assert t.gross_amount == Decimal("100.00")
    assert t.commission_amount == Decimal("20.00")
    assert t.net_amount == Decimal("80.00")

    ledger = m.CommissionLedger.query.one()
    assert ledger.transaction_id == transaction_id
    assert ledger.acc_id == acc_id
    assert ledger.training_center_id is None
    assert ledger.group_commission_amount == Decimal("20.00")
    assert ledger.group_commission_percentage == Decimal("20.00")
    assert ledger.settlement_status == "pending"
    assert m.Notification.query.count() == 0


def test_prepare_transaction_payout_without_stripe_account(
        db_session, center_id, current_ts
):
    admin1 = _create_user(db_session, "admin1@example.com", "group_admin")
    admin2 = _create_user(db_session, "admin2@example.com", "group_admin")
    _create_user(db_session, "center@example.com", "training_center_admin")
    transaction_id = _create_transaction(
        db_session,
        payee_type="training_center",
        payee_id=center_id,
        amount=Decimal("200.00"),
    )

    t = p.prepare_transaction_payout(transaction_id, 15.0, "USD", current_ts)
    assert t.status == "pending"
    assert t.stripe_account_id is None
    assert t.error_message == p.STRIPE_ACCOUNT_NOT_CONFIGURED
    assert t.commission_amount == Decimal("30.00")
    assert t.net_amount == Decimal("170.00")

    ledger = m.CommissionLedger.query.one()
    assert ledger.training_center_id == center_id
    assert ledger.acc_id is None

    notifications = m.Notification.query.order_by(
        m.Notification.user_id
    ).all()
    assert [n.user_id for n in notifications] == [admin1, admin2]
    assert all(n.type == "pending_transfer" for n in notifications)
    assert notifications[0].data["transfer_id"] == t.transfer_id
    assert notifications[0].data["transaction_id"] == transaction_id


def test_prepare_transaction_payout_uses_given_commission(
        db_session, instructor_id, current_ts
):
    transaction_id = _create_transaction(
        db_session,
        payee_type="instructor",
        payee_id=instructor_id,
        amount=Decimal("50.00"),
        commission_amount=Decimal("5.00"),
    )
    t = p.prepare_transaction_payout(transaction_id, 15.0, "USD", current_ts)
    t = db_session.get(m.Transfer, t.transfer_id)
    assert t.commission_amount == Decimal("5.00")
    assert t.net_amount == Decimal("45.00")
    assert m.CommissionLedger.query.one().instructor_id == instructor_id


def test_prepare_transaction_payout_not_eligible(
        db_session, acc_id, current_ts
):
    def prepare(transaction_id):
        return p.prepare_transaction_payout(
            transaction_id, 15.0, "USD", current_ts
        )

    pending_id = _create_transaction(
        db_session, payee_id=acc_id, status="pending"
    )
    assert prepare(pending_id) is None

    no_payee_id = _create_transaction(
        db_session, payee_type=None, payee_id=None
    )
    assert prepare(no_payee_id) is None

    missing_payee_id = _create_transaction(db_session, payee_id=acc_id + 1000)
    assert prepare(missing_payee_id) is None

    zero_amount_id = _create_transaction(
        db_session, payee_id=acc_id, amount=Decimal("0.00")
    )
    assert prepare(zero_amount_id) is None

    overcharged_id = _create_transaction(
        db_session,
        payee_id=acc_id,
        amount=Decimal("10.00"),
        commission_amount=Decimal("11.00"),
    )
    assert prepare(overcharged_id) is None

    assert prepare(1000000) is None

    paid_id = _create_transaction(db_session, payee_id=acc_id)
    _create_transfer(
        db_session, transaction_id=paid_id, status="completed"
    )
    assert prepare(paid_id) is None

    # A transaction whose transfer is still in progress, or is waiting
    # for a retry, does not get a second transfer.
    for status, retry_count in [
        ("pending", 0),
        ("processing", 0),
        ("retrying", 1),
        ("failed", 1),
        ("failed", 3),
    ]:
        transaction_id = _create_transaction(db_session, payee_id=acc_id)
        _create_transfer(
            db_session,
            transaction_id=transaction_id,
            status=status,
            retry_count=retry_count,
        )
        assert prepare(transaction_id) is None

    assert m.CommissionLedger.query.count() == 0
    assert m.Transfer.query.count() == 6


def test_prepare_transaction_payout_twice(db_session, acc_id, current_ts):
    transaction_id = _create_transaction(db_session, payee_id=acc_id)

    t = p.prepare_transaction_payout(transaction_id, 15.0, "USD", current_ts)
    assert t is not None
    assert p.prepare_transaction_payout(
        transaction_id, 15.0, "USD", current_ts
    ) is None

    assert m.Transfer.query.one().transfer_id == t.transfer_id
    assert m.CommissionLedger.query.count() == 1


def test_enqueue_transaction_payout(db_session, acc_id, current_ts):
    transaction_id = _create_transaction(db_session, payee_id=acc_id)
    assert p.enqueue_transaction_payout(transaction_id, current_ts)

    signal = m.PayoutTransactionSignal.query.one()
    assert signal.transaction_id == transaction_id
    assert _naive(signal.inserted_at) == _naive(current_ts)

    pending_id = _create_transaction(
        db_session, payee_id=acc_id, status="pending"
    )
    assert not p.enqueue_transaction_payout(pending_id, current_ts)
    assert not p.enqueue_transaction_payout(1000000, current_ts)

    paid_id = _create_transaction(db_session, payee_id=acc_id)
    _create_transfer(db_session, transaction_id=paid_id, status="completed")
    assert not p.enqueue_transaction_payout(paid_id, current_ts)

    assert m.PayoutTransactionSignal.query.count() == 1
