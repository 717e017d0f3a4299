import pytest
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError

from cms_api.stores.address_store import AddressStore
from cms_api.stores.customer_store import CustomerStore
from tests.fixtures_data import SECOND_ADDRESS, build_database, customer_payload


def _customer_data(**overrides) -> dict:
    payload = customer_payload(**overrides)
    payload.pop("address")
    return payload


def _record_statements(database) -> list[str]:
    statements: list[str] = []

    @event.listens_for(database.engine, "before_cursor_execute")
    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    return statements


def test_create_and_find_customer_by_email_is_case_insensitive():
    database = build_database()
    store = CustomerStore(database)

    created = store.create(_customer_data(email="Asha.Rao@RaoTextiles.in"))

    assert created.id is not None
    assert created.email == "asha.rao@raotextiles.in"
    assert store.find_by_email("ASHA.RAO@raotextiles.IN").id == created.id
    assert store.find_by_email("someone@else.in") is None


def test_duplicate_email_is_rejected_by_storage():
    database = build_database()
    store = CustomerStore(database)
    store.create(_customer_data(email="dup@raotextiles.in"))

    with pytest.raises(IntegrityError):
        store.create(_customer_data(email="DUP@raotextiles.in"))


def test_update_only_writes_allow_listed_columns():
    database = build_database()
    store = CustomerStore(database)
    customer = store.create(_customer_data())

    updated = store.update(
        customer.id,
        {"id": 999, "created_at": "2001-01-01", "full_name": "Asha R Rao", "is_admin": True},
    )

    assert updated.id == customer.id
    assert updated.full_name == "Asha R Rao"
    assert updated.created_at == customer.created_at
    assert store.find_by_id(999) is None


def test_update_without_allow_listed_fields_is_a_no_op():
    database = build_database()
    store = CustomerStore(database)
    customer = store.create(_customer_data())
    statements = _record_statements(database)

    result = store.update(customer.id, {"unknown": "x", "full_name": None})

    assert result is None
    assert statements == []


def test_update_unknown_customer_returns_none():
    store = CustomerStore(build_database())

    assert store.update(404, {"full_name": "Nobody"}) is None


def test_find_all_paginates_ordered_by_full_name():
    database = build_database()
    store = CustomerStore(database)
    names = ["Meera", "Arjun", "Kabir", "Divya", "Zoya", "Farhan", "Ishaan"]
    for index, name in enumerate(names):
        store.create(_customer_data(full_name=name, email=f"user{index}@raotextiles.in"))

    first_page, total = store.find_all(page=1, limit=3)
    second_page, _ = store.find_all(page=2, limit=3)
    last_page, _ = store.find_all(page=3, limit=3)

    assert total == 7
    assert [row.full_name for row in first_page] == ["Arjun", "Divya", "Farhan"]
    assert [row.full_name for row in second_page] == ["Ishaan", "Kabir", "Meera"]
    assert [row.full_name for row in last_page] == ["Zoya"]


def test_find_all_searches_name_email_and_company():
    database = build_database()
    store = CustomerStore(database)
    store.create(_customer_data(full_name="Ravi Kumar", company_name="Kumar Steel", email="ravi@kumarsteel.in"))
    store.create(_customer_data(full_name="Neha Shah", company_name="Shah Foods", email="neha@shahfoods.in"))
    store.create(_customer_data(full_name="Sunil Das", company_name="Das Logistics", email="contact@steelworks.in"))

    by_company, company_total = store.find_all(search="STEEL")
    by_name, _ = store.find_all(search="neha")
    nothing, nothing_total = store.find_all(search="granite")

    assert company_total == 2
    assert {row.full_name for row in by_company} == {"Ravi Kumar", "Sunil Das"}
    assert [row.full_name for row in by_name] == ["Neha Shah"]
    assert nothing == []
    assert nothing_total == 0


def test_delete_customer_cascades_to_addresses():
    database = build_database()
    customers = CustomerStore(database)
    addresses = AddressStore(database)
    customer = customers.create(_customer_data())
    addresses.create(customer.id, customer_payload()["address"])
    addresses.create(customer.id, SECOND_ADDRESS)

    assert customers.delete_by_id(customer.id) is True

    assert customers.find_by_id(customer.id) is None
    assert addresses.find_by_customer_id(customer.id) == []
    assert customers.delete_by_id(customer.id) is False


def test_address_store_orders_by_creation_and_updates_allow_list():
    database = build_database()
    customer = CustomerStore(database).create(_customer_data())
    store = AddressStore(database)
    first = store.create(customer.id, customer_payload()["address"])
    second = store.create(customer.id, SECOND_ADDRESS)

    listed = store.find_by_customer_id(customer.id)
    updated = store.update(second.id, {"customer_id": 999, "pin_code": "400021"})

    assert [address.id for address in listed] == [first.id, second.id]
    assert updated.pin_code == "400021"
    assert updated.customer_id == customer.id
    assert store.update(second.id, {"customer_id": 999}) is None


def test_storage_rejects_non_digit_pin_code():
    database = build_database()
    customer = CustomerStore(database).create(_customer_data())
    store = AddressStore(database)
    address = store.create(customer.id, customer_payload()["address"])

    with pytest.raises(IntegrityError):
        store.create(customer.id, {**SECOND_ADDRESS, "pin_code": "abcdef"})
    with pytest.raises(IntegrityError):
        store.update(address.id, {"pin_code": "56003a"})

    assert [row.pin_code for row in store.find_by_customer_id(customer.id)] == ["560038"]


def test_store_calls_join_caller_transaction_and_roll_back_together():
    database = build_database()
    customers = CustomerStore(database)
    addresses = AddressStore(database)

    with pytest.raises(RuntimeError):
        with database.transaction() as tx:
            customer = customers.create(_customer_data(), tx=tx)
            addresses.create(customer.id, customer_payload()["address"], tx=tx)
            raise RuntimeError("abort")

    rows, total = customers.find_all()
    assert rows == []
    assert total == 0
