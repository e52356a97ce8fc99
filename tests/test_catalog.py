from decimal import Decimal

import pytest

from marketplace.domain.errors import InsufficientStock, Unauthorized, ValidationError
from marketplace.domain.schemas import ChoiceGroupIn, ChoiceOptionIn, ProductUpdate, VariantIn
from marketplace.domain.selection import Selection


def _sized_product(make_product, small_stock=3, large_stock=2):
    return make_product(
        name="Milk Tea",
        price=Decimal("0.00"),
        stock=0,
        variants=[
            VariantIn(name="Small", price=Decimal("39.00"), stock=small_stock),
            VariantIn(name="Large", price=Decimal("49.00"), stock=large_stock),
        ],
        choice_groups=[
            ChoiceGroupIn(
                name="Add-ons",
                allow_multiple=True,
                options=[
                    ChoiceOptionIn(name="Pearls", price=Decimal("10.00"), stock=5),
                    ChoiceOptionIn(name="Pudding", price=Decimal("15.00"), stock=1),
                ],
            )
        ],
    )


def test_product_without_stock_is_created_out_of_stock(make_product):
    product = make_product(stock=0)

    assert product.availability == "OutOfStock"


def test_only_store_owner_creates_products(make_product, other_seller):
    with pytest.raises(Unauthorized):
        make_product(actor=other_seller)


def test_decrement_then_restore_returns_to_prior_stock(catalog, make_product):
    product = make_product(stock=5)

    catalog.decrement_stock(product.id, Selection.of(), 3)
    assert catalog.get_product(product.id).stock == 2

    catalog.restore_stock(product.id, Selection.of(), 3)
    assert catalog.get_product(product.id).stock == 5


def test_decrement_never_goes_negative(catalog, make_product):
    product = make_product(stock=2)

    with pytest.raises(InsufficientStock) as exc:
        catalog.decrement_stock(product.id, Selection.of(), 3)

    assert exc.value.product_id == product.id
    assert catalog.get_product(product.id).stock == 2


def test_availability_follows_base_stock(catalog, make_product):
    product = make_product(stock=1)

    catalog.decrement_stock(product.id, Selection.of(), 1)
    assert catalog.get_product(product.id).availability == "OutOfStock"

    catalog.restore_stock(product.id, Selection.of(), 1)
    assert catalog.get_product(product.id).availability == "Available"


def test_availability_with_variants_needs_all_variants_exhausted(catalog, make_product):
    product = _sized_product(make_product, small_stock=1, large_stock=0)
    small = product.variants[0]

    assert product.availability == "Available"

    catalog.decrement_stock(product.id, Selection.of(small.id), 1)

    assert catalog.get_product(product.id).availability == "OutOfStock"


def test_failed_option_decrement_leaves_variant_untouched(catalog, make_product):
    product = _sized_product(make_product)
    small = product.variants[0]
    pudding = product.choice_groups[0].options[1]

    with pytest.raises(InsufficientStock):
        catalog.decrement_stock(product.id, Selection.of(small.id, [pudding.id]), 2)

    product = catalog.get_product(product.id)
    assert product.variants[0].stock == 3
    assert product.choice_groups[0].options[1].stock == 1


def test_variant_and_options_price(catalog, make_product):
    product = _sized_product(make_product)
    large = product.variants[1]
    pearls, pudding = product.choice_groups[0].options

    resolved = catalog.resolve_selection(product, Selection.of(large.id, [pearls.id, pudding.id]))

    assert catalog.unit_price(product, resolved) == Decimal("74.00")
    assert resolved.label == "Large / Add-ons: Pearls / Add-ons: Pudding"


def test_variant_required_when_product_has_variants(catalog, make_product):
    product = _sized_product(make_product)

    with pytest.raises(ValidationError) as exc:
        catalog.resolve_selection(product, Selection.of())

    assert exc.value.fields == ["selection.variant_id"]


def test_required_group_and_single_choice(catalog, make_product):
    product = make_product(
        choice_groups=[
            ChoiceGroupIn(
                name="Spice Level",
                is_required=True,
                options=[
                    ChoiceOptionIn(name="Mild", stock=10),
                    ChoiceOptionIn(name="Hot", stock=10),
                ],
            )
        ]
    )
    mild, hot = product.choice_groups[0].options

    with pytest.raises(ValidationError):
        catalog.resolve_selection(product, Selection.of())

    with pytest.raises(ValidationError):
        catalog.resolve_selection(product, Selection.of(None, [mild.id, hot.id]))

    resolved = catalog.resolve_selection(product, Selection.of(None, [hot.id]))
    assert catalog.unit_price(product, resolved) == Decimal("50.00")


def test_restock_through_update_flips_availability(catalog, make_product, seller):
    product = make_product(stock=0)

    updated = catalog.update_product(seller, product.id, ProductUpdate(stock=4, price=Decimal("55.00")))

    assert updated.availability == "Available"
    assert updated.price == Decimal("55.00")


def test_update_keeps_existing_variant_ids(catalog, make_product, seller):
    product = _sized_product(make_product)
    small, large = product.variants

    updated = catalog.update_product(
        seller,
        product.id,
        ProductUpdate(
            variants=[
                VariantIn(id=small.id, name="Small", price=Decimal("41.00"), stock=0),
                VariantIn(id=large.id, name="Large", price=Decimal("51.00"), stock=0),
            ]
        ),
    )

    assert [v.id for v in updated.variants] == [small.id, large.id]
    assert updated.availability == "OutOfStock"


def test_other_seller_cannot_delete(catalog, make_product, other_seller):
    product = make_product()

    with pytest.raises(Unauthorized):
        catalog.delete_product(other_seller, product.id)
