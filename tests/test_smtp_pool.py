import pytest

from notification_dispatch.smtp_pool import SMTPPool


class DummySMTP:
    def __init__(self, hostname, port, start_tls=True, use_tls=False, timeout=None):
        self.hostname = hostname
        self.port = port
        self.start_tls = start_tls
        self.use_tls = use_tls
        self.timeout = timeout
        self.login_credentials = None
        self.connected = False
        self.closed = False
        self.alive = True

    async def connect(self):
        self.connected = True

    async def login(self, user, password):
        self.login_credentials = (user, password)

    async def noop(self):
        if not self.alive:
            raise RuntimeError("Connection dead")
        return 250, b"OK"

    async def quit(self):
        self.closed = True


@pytest.fixture(autouse=True)
def patch_aiosmtplib(monkeypatch):
    created = []

    def factory(**kwargs):
        smtp = DummySMTP(**kwargs)
        created.append(smtp)
        return smtp

    monkeypatch.setattr("notification_dispatch.smtp_pool.aiosmtplib.SMTP", factory)
    return created


@pytest.mark.asyncio
async def test_released_connection_is_reused(patch_aiosmtplib):
    pool = SMTPPool(ttl=30)
    async with pool.connection("smtp.example.com", 25, "user", "pass", use_tls=False) as smtp1:
        pass
    async with pool.connection("smtp.example.com", 25, "user", "pass", use_tls=False) as smtp2:
        pass

    assert smtp1 is smtp2
    assert smtp1.login_credentials == ("user", "pass")
    assert len(patch_aiosmtplib) == 1


@pytest.mark.asyncio
async def test_concurrent_checkouts_get_distinct_connections(patch_aiosmtplib):
    pool = SMTPPool(ttl=30)
    smtp1 = await pool.get_connection("smtp.example.com", 25, None, None, use_tls=False)
    smtp2 = await pool.get_connection("smtp.example.com", 25, None, None, use_tls=False)
    assert smtp1 is not smtp2


@pytest.mark.asyncio
async def test_expired_connection_is_replaced(patch_aiosmtplib):
    pool = SMTPPool(ttl=-1)
    async with pool.connection("smtp.example.com", 25, None, None, use_tls=False) as smtp1:
        pass
    async with pool.connection("smtp.example.com", 25, None, None, use_tls=False) as smtp2:
        pass

    assert smtp1.closed is True
    assert smtp2 is not smtp1


@pytest.mark.asyncio
async def test_dead_connection_is_replaced(patch_aiosmtplib):
    pool = SMTPPool(ttl=30)
    async with pool.connection("smtp.example.com", 25, None, None, use_tls=False) as smtp1:
        pass
    smtp1.alive = False

    smtp2 = await pool.get_connection("smtp.example.com", 25, None, None, use_tls=False)
    assert smtp2 is not smtp1
    assert smtp1.closed is True


@pytest.mark.asyncio
async def test_connection_that_raised_is_not_pooled(patch_aiosmtplib):
    pool = SMTPPool(ttl=30)
    with pytest.raises(RuntimeError):
        async with pool.connection("smtp.example.com", 25, None, None, use_tls=False) as smtp:
            raise RuntimeError("send failed")

    assert smtp.closed is True
    assert pool.idle == {}


@pytest.mark.asyncio
async def test_max_idle_limits_pooled_connections(patch_aiosmtplib):
    pool = SMTPPool(ttl=30, max_idle=1)
    params = ("smtp.example.com", 25, None, None, False)
    smtp1 = await pool.get_connection(*params[:4], use_tls=False)
    smtp2 = await pool.get_connection(*params[:4], use_tls=False)
    await pool.release(smtp1, params)
    await pool.release(smtp2, params)

    assert len(pool.idle[params]) == 1
    assert smtp2.closed is True


@pytest.mark.asyncio
async def test_cleanup_removes_dead_connections(monkeypatch, patch_aiosmtplib):
    pool = SMTPPool(ttl=1)
    async with pool.connection("smtp.example.com", 25, None, None, use_tls=False) as smtp:
        pass

    async def fake_is_alive(_smtp):
        return False

    monkeypatch.setattr(pool, "_is_alive", fake_is_alive)

    await pool.cleanup()
    assert smtp.closed is True
    assert pool.idle == {}


@pytest.mark.asyncio
async def test_close_quits_idle_connections(patch_aiosmtplib):
    pool = SMTPPool(ttl=30)
    async with pool.connection("smtp.example.com", 25, None, None, use_tls=False) as smtp:
        pass
    await pool.close()
    assert smtp.closed is True
    assert pool.idle == {}


@pytest.mark.asyncio
async def test_tls_modes(patch_aiosmtplib):
    pool = SMTPPool(ttl=30)
    implicit = await pool.get_connection("smtp.example.com", 465, None, None, use_tls=True)
    assert implicit.use_tls is True
    assert implicit.start_tls is False

    starttls = await pool.get_connection("smtp.example.com", 587, None, None, use_tls=True)
    assert starttls.use_tls is False
    assert starttls.start_tls is True

    plain = await pool.get_connection("smtp.example.com", 25, None, None, use_tls=False)
    assert plain.use_tls is False
    assert plain.start_tls is False
