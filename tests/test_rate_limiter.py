from portal.services.rate_limiter import LoginRateLimiter


def test_permite_hasta_el_limite_y_luego_pide_esperar():
    limiter = LoginRateLimiter("3/minute")
    for _ in range(3):
        assert limiter.consumir("123", "10.0.0.1") is None

    espera = limiter.consumir("123", "10.0.0.1")
    assert espera is not None
    assert 1 <= espera <= 60


def test_intento_rechazado_no_extiende_la_ventana():
    limiter = LoginRateLimiter("1/minute")
    assert limiter.consumir("123", None) is None
    for _ in range(5):
        assert limiter.consumir("123", None) is not None

    limiter.limpiar("123", None)
    assert limiter.consumir("123", None) is None


def test_la_llave_combina_documento_e_ip():
    limiter = LoginRateLimiter("1/minute")
    limiter.consumir("123", "10.0.0.1")

    assert limiter.consumir("123", "10.0.0.1") is not None
    assert limiter.consumir("123", "10.0.0.2") is None
    assert limiter.consumir("456", "10.0.0.1") is None


def test_la_llave_normaliza_el_documento():
    assert LoginRateLimiter.clave(" ABC ", "1.1.1.1") == LoginRateLimiter.clave("abc", "1.1.1.1")


def test_limpiar_reinicia_la_ventana():
    limiter = LoginRateLimiter("1/minute")
    limiter.consumir("123", None)
    assert limiter.consumir("123", None) is not None

    limiter.limpiar("123", None)
    assert limiter.consumir("123", None) is None
