import argparse
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from printshop.db import SessionLocal, engine
from printshop.models import (
    Base,
    Customer,
    FinishedProductComponent,
    PackagingUnitType,
    Product,
    ProductCategory,
)
from printshop.services.product_service import load_product_index
from printshop.services.product_cost_service import derived_costs


def _product(db, name: str, **values) -> Product:
    product = db.execute(select(Product).where(Product.name == name)).scalar_one_or_none()
    if not product:
        product = Product(name=name, **values)
        db.add(product)
        db.flush()
    return product


def seed(session_factory: sessionmaker = SessionLocal) -> None:
    with session_factory() as db:
        customer = db.execute(select(Customer).where(Customer.name == 'Demo Customer')).scalar_one_or_none()
        if not customer:
            db.add(Customer(name='Demo Customer', company='Demo Ltd', email='orders@example.com'))

        _product(
            db,
            'Mailer box 300x200',
            category=ProductCategory.PACKAGING,
            unit_type=PackagingUnitType.BOXED,
            units_per_box=500,
            box_cost=Decimal('45.99'),
        )
        vinyl = _product(
            db,
            'Gloss vinyl 1.5m',
            category=ProductCategory.WIDE_FORMAT,
            width_m=Decimal('1.5'),
            length_m=Decimal('50'),
            roll_cost=Decimal('225'),
        )
        laminate = _product(db, 'Matt laminate', category=ProductCategory.WIDE_FORMAT, cost_per_sqm=Decimal('5'))
        _product(db, 'A5 leaflet 150gsm', category=ProductCategory.LEAFLETS, thickness='150gsm', cost_per_unit=Decimal('0.04'))

        banner = _product(db, 'Laminated banner', category=ProductCategory.FINISHED_PRODUCT, material='Mixed')
        if not banner.components:
            banner.components = [
                FinishedProductComponent(component_product_id=vinyl.id, quantity=Decimal('2')),
                FinishedProductComponent(component_product_id=laminate.id, quantity=Decimal('1')),
            ]
        db.flush()

        index = load_product_index(db)
        for product in db.execute(select(Product)).scalars():
            for field, value in derived_costs(index[product.id], index).items():
                setattr(product, field, value)

        db.commit()


def main() -> None:
    parser = argparse.ArgumentParser(description='Create tables and insert a small demo catalogue.')
    parser.add_argument('--skip-create', action='store_true', help='Assume the schema already exists.')
    args = parser.parse_args()

    if not args.skip_create:
        Base.metadata.create_all(engine)
    seed()
    print('Seed data inserted/verified.')


if __name__ == '__main__':
    main()
