from __future__ import annotations

from ..extensions import db
from furnishop.time_utils import to_utc_z, to_iso_date


CUSTOMER_TYPES = ("cash", "hire-purchase")


class Customer(db.Model):
    """
    Customer master data.

    customer_type separates walk-in cash buyers from hire-purchase customers;
    the hire-purchase fields (national ID, income, references) are only
    filled for the latter.

    Aggregates (total_purchases_cents, last_purchase_date) are maintained
    when a cash sale is committed for the customer.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        db.Index("ix_customers_phone", "phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_type = db.Column(db.String(16), nullable=False, default="cash")

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    province = db.Column(db.String(120), nullable=True)
    district = db.Column(db.String(120), nullable=True)
    sub_district = db.Column(db.String(120), nullable=True)
    postal_code = db.Column(db.String(16), nullable=True)

    # Hire-purchase only
    national_id = db.Column(db.String(32), nullable=True)
    occupation = db.Column(db.String(120), nullable=True)
    workplace = db.Column(db.String(255), nullable=True)
    monthly_income_cents = db.Column(db.Integer, nullable=True)
    reference_name = db.Column(db.String(255), nullable=True)
    reference_phone = db.Column(db.String(32), nullable=True)

    total_purchases_cents = db.Column(db.Integer, nullable=False, default=0)
    last_purchase_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    images = db.relationship(
        "CustomerImage",
        backref="customer",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CustomerImage.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r} phone={self.phone!r}>"

    def to_dict(self, *, primary_image_url: str | None = None) -> dict:
        return {
            "id": self.id,
            "customer_type": self.customer_type,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "province": self.province,
            "district": self.district,
            "sub_district": self.sub_district,
            "postal_code": self.postal_code,
            "national_id": self.national_id,
            "occupation": self.occupation,
            "workplace": self.workplace,
            "monthly_income_cents": self.monthly_income_cents,
            "reference_name": self.reference_name,
            "reference_phone": self.reference_phone,
            "total_purchases_cents": self.total_purchases_cents,
            "last_purchase_date": to_iso_date(self.last_purchase_date),
            "primary_image_url": primary_image_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class CustomerImage(db.Model):
    """Customer gallery image. At most one image per customer is primary."""
    __tablename__ = "customer_images"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    image_path = db.Column(db.String(255), nullable=False)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self, *, url: str | None = None) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "image_path": self.image_path,
            "url": url,
            "is_primary": self.is_primary,
            "created_at": to_utc_z(self.created_at),
        }
