"""
Customer and customer image tests.
"""

import os

import pytest

from furnishop.extensions import db
from furnishop.models import CustomerImage
from furnishop.services import storage_service
from furnishop.services.customer_service import (
    CustomerError,
    add_customer_image,
    create_customer,
    customer_to_dict,
    delete_customer_image,
    list_customer_images,
    list_customers,
    set_primary_image,
    update_customer,
)
from furnishop.services.storage_service import StorageError


PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


def _upload(customer, name="front.png", primary=False):
    image = add_customer_image(customer_id=customer.id, filename=name, data=PNG_BYTES, make_primary=primary)
    db.session.commit()
    return image


def _primary_ids(customer):
    return [i.id for i in list_customer_images(customer.id) if i.is_primary]


class TestCustomers:

    def test_create_and_update(self, db_session):
        customer = create_customer({"name": "Nok", "phone": "0899999999"})
        db.session.commit()
        assert customer.customer_type == "cash"
        assert customer.total_purchases_cents == 0

        update_customer(customer.id, {"customer_type": "hire-purchase", "occupation": "Teacher"})
        db.session.commit()
        assert customer.customer_type == "hire-purchase"
        assert update_customer(9999, {"name": "x"}) is None

    def test_list_search_and_type(self, db_session):
        create_customer({"name": "Anan", "phone": "0811111111", "customer_type": "cash"})
        create_customer({"name": "Busaba", "phone": "0822222222", "customer_type": "hire-purchase"})
        db.session.commit()

        assert [c["name"] for c in list_customers()] == ["Anan", "Busaba"]
        assert [c["name"] for c in list_customers(search="2222")] == ["Busaba"]
        assert [c["name"] for c in list_customers(customer_type="cash")] == ["Anan"]


class TestCustomerImages:

    def test_first_image_becomes_primary(self, customer):
        first = _upload(customer)
        second = _upload(customer, "side.jpg")

        assert first.is_primary is True
        assert second.is_primary is False
        assert _primary_ids(customer) == [first.id]

    def test_upload_stores_object(self, app, customer):
        image = _upload(customer)
        path = os.path.join(app.config["MEDIA_ROOT"], storage_service.CUSTOMER_BUCKET, image.image_path)
        assert os.path.exists(path)
        assert image.image_path.startswith(f"{customer.id}/")

    def test_make_primary_on_upload(self, customer):
        first = _upload(customer)
        second = _upload(customer, "side.jpg", primary=True)
        assert _primary_ids(customer) == [second.id]
        assert db.session.get(CustomerImage, first.id).is_primary is False

    def test_set_primary_keeps_one(self, customer):
        first = _upload(customer)
        second = _upload(customer, "side.jpg")
        set_primary_image(customer_id=customer.id, image_id=second.id)
        db.session.commit()
        assert _primary_ids(customer) == [second.id]
        assert db.session.get(CustomerImage, first.id).is_primary is False

    def test_primary_url_is_joined_at_read_time(self, customer):
        assert customer_to_dict(customer)["primary_image_url"] is None
        image = _upload(customer)
        url = customer_to_dict(customer)["primary_image_url"]
        assert url.endswith(image.image_path)
        assert list_customers()[0]["primary_image_url"] == url

    def test_deleting_primary_promotes_oldest(self, app, customer):
        first = _upload(customer)
        second = _upload(customer, "side.jpg")
        third = _upload(customer, "back.jpg")
        first_path = os.path.join(app.config["MEDIA_ROOT"], storage_service.CUSTOMER_BUCKET, first.image_path)

        delete_customer_image(customer_id=customer.id, image_id=first.id)
        db.session.commit()

        assert _primary_ids(customer) == [second.id]
        assert db.session.get(CustomerImage, third.id).is_primary is False
        assert not os.path.exists(first_path)

    def test_deleting_last_image(self, customer):
        only = _upload(customer)
        delete_customer_image(customer_id=customer.id, image_id=only.id)
        db.session.commit()
        assert list_customer_images(customer.id) == []

    def test_image_of_other_customer_rejected(self, customer):
        from conftest import make_customer

        other = make_customer(name="Other", phone="0800000000")
        image = _upload(other)
        with pytest.raises(CustomerError):
            set_primary_image(customer_id=customer.id, image_id=image.id)
        with pytest.raises(CustomerError):
            delete_customer_image(customer_id=customer.id, image_id=image.id)

    def test_non_image_rejected(self, customer):
        with pytest.raises(StorageError, match="Unsupported image type"):
            add_customer_image(customer_id=customer.id, filename="notes.txt", data=b"hi")

    def test_unknown_customer(self, db_session):
        with pytest.raises(CustomerError):
            add_customer_image(customer_id=9999, filename="a.png", data=PNG_BYTES)
