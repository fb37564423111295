from sqlalchemy import (
    DDL,
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    Time,
    UniqueConstraint,
    event,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Providers(Base):
    __tablename__ = 'providers'

    display_name = Column(Text, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    bio = Column(Text)
    photo_url = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))

    schedules = relationship('ProviderSchedules', back_populates='provider')
    schedule_overrides = relationship('ProviderScheduleOverrides', back_populates='provider')
    provider_services = relationship('ProviderServices', back_populates='provider')
    bookings = relationship('Bookings', back_populates='provider')


class Services(Base):
    __tablename__ = 'services'

    name = Column(Text, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    id = Column(Integer, primary_key=True)
    category = Column(Text)
    description = Column(Text)

    provider_services = relationship('ProviderServices', back_populates='service')


class ProviderServices(Base):
    __tablename__ = 'provider_services'
    __table_args__ = (
        UniqueConstraint('provider_id', 'service_id'),
    )

    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'), nullable=False)
    price_cents = Column(Integer, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    duration_minutes = Column(Integer)  # NULL = use services.duration_minutes

    provider = relationship('Providers', back_populates='provider_services')
    service = relationship('Services', back_populates='provider_services')


class ProviderSchedules(Base):
    """Weekly recurring rule; day_of_week 0 = Sunday ... 6 = Saturday."""

    __tablename__ = 'provider_schedules'
    __table_args__ = (
        UniqueConstraint('provider_id', 'day_of_week'),
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_provider_schedules_dow'),
    )

    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    is_closed = Column(Integer, nullable=False, server_default=text('0'))
    id = Column(Integer, primary_key=True)
    start_time = Column(Time)
    end_time = Column(Time)
    latest_start_time = Column(Time)

    provider = relationship('Providers', back_populates='schedules')


class ProviderScheduleOverrides(Base):
    """One-off rule for a single civil date; shadows the weekly rule."""

    __tablename__ = 'provider_schedule_overrides'
    __table_args__ = (
        UniqueConstraint('provider_id', 'day_date'),
    )

    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    day_date = Column(Date, nullable=False)
    is_closed = Column(Integer, nullable=False, server_default=text('0'))
    id = Column(Integer, primary_key=True)
    start_time = Column(Time)
    end_time = Column(Time)
    latest_start_time = Column(Time)
    reason = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))

    provider = relationship('Providers', back_populates='schedule_overrides')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        CheckConstraint('end_at > start_at', name='ck_bookings_end_after_start'),
        UniqueConstraint('payment_intent_id', name='uq_bookings_payment_intent_id'),
    )

    provider_id = Column(ForeignKey('providers.id'), nullable=False, index=True)
    primary_service_id = Column(ForeignKey('services.id'), nullable=False)
    addon_service_ids = Column(JSON, nullable=False, default=list)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending_payment'"))
    total_cents = Column(Integer, nullable=False, server_default=text('0'))
    deposit_cents = Column(Integer, nullable=False, server_default=text('0'))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    id = Column(Integer, primary_key=True)
    payment_intent_id = Column(Text)
    payment_status = Column(Text)
    client_name = Column(Text)
    client_email = Column(Text)
    client_phone = Column(Text)
    notes = Column(Text)
    service_summary = Column(Text)
    cancelled_at = Column(DateTime(timezone=True))
    cancellation_reason = Column(Text)

    provider = relationship('Providers', back_populates='bookings')
    primary_service = relationship('Services')


# ── Store-level overlap exclusion ────────────────────────────────────────
#
# Active bookings ('pending_payment', 'confirmed') of one provider must not
# overlap as half-open intervals. The insert itself fails with an integrity
# error, which the booking guard reports as a conflict.

OVERLAP_CONSTRAINT = "bookings_no_overlap_per_provider"

_SQLITE_OVERLAP_CHECK = """
    SELECT RAISE(ABORT, '{name}')
    WHERE EXISTS (
        SELECT 1 FROM bookings b
        WHERE b.provider_id = NEW.provider_id
          AND b.id IS NOT NEW.id
          AND b.status IN ('pending_payment', 'confirmed')
          AND b.start_at < NEW.end_at
          AND b.end_at > NEW.start_at
    );
""".format(name=OVERLAP_CONSTRAINT)

event.listen(
    Bookings.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER IF NOT EXISTS bookings_no_overlap_insert "
        "BEFORE INSERT ON bookings "
        "WHEN NEW.status IN ('pending_payment', 'confirmed') "
        "BEGIN " + _SQLITE_OVERLAP_CHECK + " END;"
    ).execute_if(dialect="sqlite"),
)

event.listen(
    Bookings.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER IF NOT EXISTS bookings_no_overlap_update "
        "BEFORE UPDATE OF status, start_at, end_at, provider_id ON bookings "
        "WHEN NEW.status IN ('pending_payment', 'confirmed') "
        "BEGIN " + _SQLITE_OVERLAP_CHECK + " END;"
    ).execute_if(dialect="sqlite"),
)

event.listen(
    Bookings.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)

event.listen(
    Bookings.__table__,
    "after_create",
    DDL(
        "ALTER TABLE bookings ADD CONSTRAINT " + OVERLAP_CONSTRAINT + " "
        "EXCLUDE USING gist ("
        "provider_id WITH =, "
        "tstzrange(start_at, end_at, '[)') WITH &&"
        ") WHERE (status IN ('pending_payment', 'confirmed'))"
    ).execute_if(dialect="postgresql"),
)
