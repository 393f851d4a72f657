import threading
from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from erphub.auth.security import get_password_hash
from erphub.db import Base
from erphub.models.models import Company, User
from erphub.services import numbering
from erphub.services.invoices import create_invoice
from erphub.services.proposals import create_proposal


ITEMS = [{"description": "Consulting", "quantity": 2, "unit_price": 50}]


def test_invoice_numbers_are_sequential_and_distinct(db, staff):
    first = create_invoice(db, staff.company_id, staff.id, "Client", ITEMS)
    second = create_invoice(db, staff.company_id, staff.id, "Client", ITEMS)

    assert first.invoice_number != second.invoice_number
    assert first.invoice_number.startswith("INV-")
    assert first.invoice_number.endswith("-0001")
    assert second.invoice_number.endswith("-0002")


def test_invoice_number_skips_taken_candidate(db, staff, monkeypatch):
    monkeypatch.setattr(numbering, "BACKOFF_S", 0)
    today = date(2024, 6, 15)
    create_invoice(db, staff.company_id, staff.id, "Client", ITEMS, invoice_number="INV-20240615-0002")

    assert numbering.generate_invoice_number(db, today) == "INV-20240615-0003"


def test_colliding_explicit_number_is_regenerated(db, staff, monkeypatch):
    monkeypatch.setattr(numbering, "BACKOFF_S", 0)
    first = create_invoice(db, staff.company_id, staff.id, "Client", ITEMS)
    second = create_invoice(db, staff.company_id, staff.id, "Client", ITEMS, invoice_number=first.invoice_number)

    assert second.invoice_number != first.invoice_number


def test_invoice_totals(db, staff):
    invoice = create_invoice(db, staff.company_id, staff.id, "Client", ITEMS, tax=10)

    assert invoice.amount == 100
    assert invoice.total == 110
    assert invoice.items[0].total == 100


def test_proposal_numbers_increment(db, staff):
    first = create_proposal(db, staff.company_id, staff.id, "Client", "Fit-out")
    second = create_proposal(db, staff.company_id, staff.id, "Client", "Fit-out phase 2")

    year = first.proposal_number.split("-")[1]
    assert first.proposal_number == f"PROP-{year}-0001"
    assert second.proposal_number == f"PROP-{year}-0002"
    assert first.version == 1


def test_concurrent_invoice_numbers_are_distinct(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'numbers.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        future=True,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    with Session() as setup:
        company = Company(name="Parallel Co")
        setup.add(company)
        setup.flush()
        user = User(email="parallel@example.com", password_hash=get_password_hash("secret123"),
                    first_name="Par", last_name="Allel", role="staff", company_id=company.id)
        setup.add(user)
        setup.commit()
        company_id, user_id = company.id, user.id

    workers = 8
    barrier = threading.Barrier(workers)
    numbers, errors = [], []
    lock = threading.Lock()

    def create():
        session = Session()
        try:
            barrier.wait()
            number = create_invoice(session, company_id, user_id, "Client", ITEMS).invoice_number
            with lock:
                numbers.append(number)
        except Exception as e:
            with lock:
                errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=create) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    engine.dispose()

    assert errors == []
    assert len(numbers) == workers
    assert len(set(numbers)) == workers
