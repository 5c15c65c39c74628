from helpbuddy.services import avatar_service


def test_avatar_options_one_per_style():
    options = avatar_service.avatar_options(size=96)

    assert len(options) == 5
    for style, url in zip(avatar_service.AVATAR_STYLES, options):
        assert url.startswith(f"https://api.dicebear.com/7.x/{style}/svg?seed=")
        assert "size=96" in url
        assert "backgroundColor=transparent" in url


def test_default_avatar_uses_username_as_seed():
    assert avatar_service.default_avatar_url("ana") == (
        "https://api.dicebear.com/7.x/fun-emoji/svg?seed=ana&size=120"
    )


def test_role_labels():
    assert avatar_service.role_label("student") == "Aluno"
    assert avatar_service.role_label("parent") == "Responsável"
    assert avatar_service.role_label("educator") == "Educador"
    assert avatar_service.role_label("other") == "other"
