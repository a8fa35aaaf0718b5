"""Tests for movement validation (no database involved)."""

import uuid

import pytest

from core.errors import (
    DuplicateProductInMovement,
    InsufficientStock,
    MovementValidationError,
    ProductNotFound,
)
from db.product import Product
from schemas.stocks import StockItemCreate
from services.stock_ledger import MovementItem, as_movement_items, validate_movement


@pytest.fixture
def boxes():
    return Product(
        id=uuid.uuid4(),
        name="PVC Elbow Box",
        unit="boxes",
        has_sub_unit=True,
        sub_unit="pcs",
        conversion_rate=12,
        current_stock=98,
    )


@pytest.fixture
def tape():
    return Product(
        id=uuid.uuid4(),
        name="Teflon Tape",
        unit="rolls",
        has_sub_unit=False,
        current_stock=3,
    )


@pytest.fixture
def products(boxes, tape):
    return {boxes.id: boxes, tape.id: tape}


def test_out_within_stock_passes(boxes, products):
    validate_movement("OUT", [MovementItem(boxes.id, 24, is_sub_unit=True)], products)


def test_out_of_exact_stock_passes(tape, products):
    validate_movement("OUT", [MovementItem(tape.id, 3)], products)


def test_out_beyond_stock_in_sub_units_carries_details(boxes, products):
    with pytest.raises(InsufficientStock) as exc:
        validate_movement("OUT", [MovementItem(boxes.id, 1200, is_sub_unit=True)], products)

    detail = exc.value.detail
    assert exc.value.status_code == 400
    assert detail["product_id"] == str(boxes.id)
    assert detail["product_name"] == "PVC Elbow Box"
    assert detail["current_stock"] == 98
    assert detail["requested"] == 100
    assert detail["is_sub_unit"] is True
    assert detail["sub_unit_requested"] == 1200
    assert detail["conversion_rate"] == 12


def test_out_beyond_stock_in_main_units_has_no_sub_unit_details(tape, products):
    with pytest.raises(InsufficientStock) as exc:
        validate_movement("OUT", [MovementItem(tape.id, 4)], products)
    assert "sub_unit_requested" not in exc.value.detail
    assert exc.value.detail["requested"] == 4


def test_any_short_item_fails_the_whole_movement(boxes, tape, products):
    items = [MovementItem(boxes.id, 1), MovementItem(tape.id, 10)]
    with pytest.raises(InsufficientStock) as exc:
        validate_movement("OUT", items, products)
    assert exc.value.product_id == tape.id


@pytest.mark.parametrize("movement_type", ["IN", "ADJUSTMENT"])
def test_in_and_adjustment_skip_sufficiency(movement_type, tape, products):
    validate_movement(movement_type, [MovementItem(tape.id, 500)], products)


@pytest.mark.parametrize("movement_type", ["IN", "OUT", "ADJUSTMENT"])
def test_missing_products_fail_for_every_type(movement_type, tape, products):
    ghost_a, ghost_b = uuid.uuid4(), uuid.uuid4()
    items = [MovementItem(ghost_a, 1), MovementItem(tape.id, 1), MovementItem(ghost_b, 1)]
    with pytest.raises(ProductNotFound) as exc:
        validate_movement(movement_type, items, products)
    assert exc.value.status_code == 404
    assert exc.value.detail["missing_products"] == [str(ghost_a), str(ghost_b)]


def test_duplicate_product_is_rejected(boxes, products):
    items = [MovementItem(boxes.id, 1), MovementItem(boxes.id, 12, is_sub_unit=True)]
    with pytest.raises(DuplicateProductInMovement) as exc:
        validate_movement("IN", items, products)
    assert exc.value.duplicate_products == [boxes.id]


def test_unknown_type_is_rejected(tape, products):
    with pytest.raises(MovementValidationError):
        validate_movement("TRANSFER", [MovementItem(tape.id, 1)], products)


@pytest.mark.parametrize("quantity", [0, -1])
def test_non_positive_quantity_is_rejected(quantity, tape, products):
    with pytest.raises(MovementValidationError):
        validate_movement("IN", [MovementItem(tape.id, quantity)], products)


def test_empty_items_are_rejected(products):
    with pytest.raises(MovementValidationError):
        validate_movement("IN", [], products)


def test_sub_unit_on_plain_product_is_rejected(tape, products):
    with pytest.raises(MovementValidationError):
        validate_movement("IN", [MovementItem(tape.id, 1, is_sub_unit=True)], products)


def test_request_items_become_movement_items(boxes):
    items = as_movement_items(
        [StockItemCreate(product_id=boxes.id, quantity=24, is_sub_unit=True), MovementItem(boxes.id, 1)]
    )

    assert items == [MovementItem(boxes.id, 24, is_sub_unit=True), MovementItem(boxes.id, 1)]
