from portal.services.menu_cache import MenuCache


def test_construye_una_sola_vez_por_rol():
    cache = MenuCache()
    llamadas = []

    def construir():
        llamadas.append(1)
        return ["menu"]

    assert cache.get_or_build(1, construir) == ["menu"]
    assert cache.get_or_build(1, construir) == ["menu"]
    assert len(llamadas) == 1
    assert 1 in cache


def test_invalidate_y_clear():
    cache = MenuCache()
    cache.get_or_build(1, lambda: ["a"])
    cache.get_or_build(2, lambda: ["b"])

    cache.invalidate(1)
    assert 1 not in cache
    assert 2 in cache

    cache.clear()
    assert 2 not in cache


def test_invalidar_durante_la_construccion_no_guarda_el_menu_viejo():
    cache = MenuCache()

    def construir():
        cache.invalidate(1)
        return ["viejo"]

    assert cache.get_or_build(1, construir) == ["viejo"]
    assert 1 not in cache
    assert cache.get_or_build(1, lambda: ["nuevo"]) == ["nuevo"]
    assert 1 in cache


def test_clear_durante_la_construccion_no_guarda_el_menu_viejo():
    cache = MenuCache()

    def construir():
        cache.clear()
        return ["viejo"]

    cache.get_or_build(2, construir)
    assert 2 not in cache


def test_invalidar_otro_rol_no_afecta_la_construccion():
    cache = MenuCache()

    def construir():
        cache.invalidate(2)
        return ["menu"]

    cache.get_or_build(1, construir)
    assert 1 in cache
