from app.services.category_validator import CategoryValidator


def test_create_requires_name(store):
    result = CategoryValidator(store).validate({"description": "no name"})
    assert not result.valid
    assert result.errors == ["Category name is required and must be a non-empty string"]


def test_blank_name_is_rejected_on_create(store):
    result = CategoryValidator(store).validate({"name": "   "})
    assert not result.valid


def test_all_violations_are_collected(store):
    result = CategoryValidator(store).validate({
        "name": "x" * 256,
        "description": 42,
        "meta_title": ["not", "a", "string"],
        "slug": "Bad Slug",
        "sort_order": "first",
    })
    assert not result.valid
    assert len(result.errors) == 5
    assert "Category name must not exceed 255 characters" in result.errors
    assert "Category description must be a string" in result.errors
    assert "Meta title must be a string" in result.errors
    assert "Sort order must be an integer" in result.errors


def test_non_mapping_payload(store):
    result = CategoryValidator(store).validate(["Electronics"])
    assert not result.valid
    assert result.errors == ["Category data must be a valid object"]


def test_update_allows_missing_name(store):
    result = CategoryValidator(store).validate({"description": "New copy"}, is_update=True)
    assert result.valid


def test_update_rejects_blank_name(store):
    result = CategoryValidator(store).validate({"name": ""}, is_update=True)
    assert result.errors == ["Category name must be a non-empty string"]


def test_duplicate_name_respects_exclude_id(service, store):
    electronics = service.create({"name": "Electronics"})
    validator = CategoryValidator(store)

    clash = validator.validate({"name": " Electronics "})
    assert not clash.valid
    assert "already exists" in clash.errors[0]

    own_name = validator.validate({"name": "Electronics"}, is_update=True, exclude_id=electronics.id)
    assert own_name.valid


def test_validate_id(store):
    validator = CategoryValidator(store)
    assert validator.validate_id("6a1f").valid
    assert not validator.validate_id("").valid
    assert not validator.validate_id("   ").valid
    assert not validator.validate_id(None).valid
    assert not validator.validate_id(17).valid


def test_validate_slug(store):
    validator = CategoryValidator(store)
    assert validator.validate_slug("smart-phones-2").valid
    assert not validator.validate_slug("a").valid
    assert not validator.validate_slug("x" * 101).valid
    assert not validator.validate_slug("Upper-Case").valid
    assert not validator.validate_slug("under_score").valid
    assert validator.validate_slug("").error == "Slug is required and must be a string"
