from __future__ import annotations

from sqlalchemy import and_, or_

from furnishop.extensions import db
from furnishop.models import Customer, CustomerImage
from furnishop.validation import ModelValidationPolicy
from furnishop.services import storage_service


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_type", "name", "phone", "email", "address", "province",
        "district", "sub_district", "postal_code", "national_id", "occupation",
        "workplace", "monthly_income_cents", "reference_name", "reference_phone",
    },
    required_on_create={"name", "phone"},
)


class CustomerError(Exception):
    """Raised when customer operations fail."""
    pass


def _primary_image_url(path: str | None) -> str | None:
    return storage_service.public_url(storage_service.CUSTOMER_BUCKET, path)


def customer_to_dict(customer: Customer) -> dict:
    primary = (
        db.session.query(CustomerImage.image_path)
        .filter_by(customer_id=customer.id, is_primary=True)
        .scalar()
    )
    return customer.to_dict(primary_image_url=_primary_image_url(primary))


def image_to_dict(image: CustomerImage) -> dict:
    return image.to_dict(url=storage_service.public_url(storage_service.CUSTOMER_BUCKET, image.image_path))


def create_customer(patch: dict) -> Customer:
    customer = Customer(customer_type=patch.get("customer_type") or "cash")
    for key, value in patch.items():
        setattr(customer, key, value)
    db.session.add(customer)
    db.session.flush()
    return customer


def update_customer(customer_id: int, patch: dict) -> Customer | None:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        return None
    for key, value in patch.items():
        setattr(customer, key, value)
    db.session.flush()
    return customer


def get_customer(customer_id: int) -> Customer | None:
    return db.session.get(Customer, customer_id)


def list_customers(*, search: str | None = None, customer_type: str | None = None) -> list[dict]:
    """
    Customers ordered by name, each with its primary image URL.

    The primary image is joined at read time; it is never copied onto the
    customer row.
    """
    q = (
        db.session.query(Customer, CustomerImage.image_path)
        .outerjoin(
            CustomerImage,
            and_(CustomerImage.customer_id == Customer.id, CustomerImage.is_primary.is_(True)),
        )
    )
    if customer_type:
        q = q.filter(Customer.customer_type == customer_type)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Customer.name.ilike(like), Customer.phone.ilike(like), Customer.national_id.ilike(like)))

    rows = q.order_by(Customer.name.asc(), Customer.id.asc()).all()
    return [customer.to_dict(primary_image_url=_primary_image_url(path)) for customer, path in rows]


def _clear_primary(customer_id: int) -> None:
    db.session.query(CustomerImage).filter_by(customer_id=customer_id, is_primary=True).update(
        {CustomerImage.is_primary: False}, synchronize_session="fetch"
    )


def add_customer_image(*, customer_id: int, filename: str, data: bytes, make_primary: bool = False) -> CustomerImage:
    """
    Upload an image to the customer's gallery.

    The first image of a customer becomes primary automatically. The file
    is written only after the row is flushed; callers discard it if the
    commit fails.
    """
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise CustomerError(f"Customer {customer_id} not found")

    path = storage_service.make_object_path(str(customer_id), filename)

    has_primary = (
        db.session.query(CustomerImage.id).filter_by(customer_id=customer_id, is_primary=True).first()
        is not None
    )
    primary = make_primary or not has_primary
    if primary:
        _clear_primary(customer_id)

    image = CustomerImage(customer_id=customer_id, image_path=path, is_primary=primary)
    db.session.add(image)
    db.session.flush()
    storage_service.put(storage_service.CUSTOMER_BUCKET, path, data)
    return image


def set_primary_image(*, customer_id: int, image_id: int) -> CustomerImage:
    image = db.session.query(CustomerImage).filter_by(id=image_id, customer_id=customer_id).first()
    if image is None:
        raise CustomerError(f"Image {image_id} not found for customer {customer_id}")
    _clear_primary(customer_id)
    image.is_primary = True
    db.session.flush()
    return image


def delete_customer_image(*, customer_id: int, image_id: int) -> None:
    """
    Remove an image. If it was primary, the oldest remaining image is promoted.
    """
    image = db.session.query(CustomerImage).filter_by(id=image_id, customer_id=customer_id).first()
    if image is None:
        raise CustomerError(f"Image {image_id} not found for customer {customer_id}")

    was_primary = image.is_primary
    path = image.image_path
    db.session.delete(image)
    db.session.flush()

    if was_primary:
        successor = (
            db.session.query(CustomerImage)
            .filter_by(customer_id=customer_id)
            .order_by(CustomerImage.id.asc())
            .first()
        )
        if successor is not None:
            successor.is_primary = True
            db.session.flush()

    storage_service.delete(storage_service.CUSTOMER_BUCKET, path)


def list_customer_images(customer_id: int) -> list[CustomerImage]:
    return (
        db.session.query(CustomerImage)
        .filter_by(customer_id=customer_id)
        .order_by(CustomerImage.is_primary.desc(), CustomerImage.id.asc())
        .all()
    )
