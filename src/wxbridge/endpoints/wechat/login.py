"""二维码登录流程控制器

签发二维码后由调用方驱动轮询,直到登录成功或超出调用方给定的次数/时限。
控制器不持有后台定时器,调用方停止迭代即取消轮询。
"""

import time
from collections.abc import Callable, Iterator

from wxbridge.endpoints.wechat.client import ProxyClient
from wxbridge.endpoints.wechat.config import DEFAULT_DEVICE_TYPE, DEFAULT_PROXY_LINE
from wxbridge.endpoints.wechat.exceptions import LoginTimeout
from wxbridge.endpoints.wechat.models import (
    LOGIN_STATUS_RANK,
    LoginLoggedIn,
    LoginSession,
    LoginStatus,
)
from wxbridge.utils.logging import get_logger
from wxbridge.utils.security import hash_pii

logger = get_logger(__name__)


class LoginFlowController:
    """登录流程控制器

    状态机: waiting -> need_verify -> logged_in,或 waiting -> logged_in。
    同一会话内状态只前进不后退。
    """

    def __init__(
        self,
        client: ProxyClient,
        device_type: str | None = None,
        proxy: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """初始化控制器

        Args:
            client: 代理客户端
            device_type: 默认设备类型
            proxy: 默认代理线路
            sleep: 轮询间隔等待函数(测试可替换)
            clock: 单调时钟(测试可替换)
        """
        self.client = client
        self.device_type = device_type or DEFAULT_DEVICE_TYPE
        self.proxy = proxy or DEFAULT_PROXY_LINE
        self._sleep = sleep
        self._clock = clock

    def start(self, device_type: str | None = None, proxy: str | None = None) -> LoginSession:
        """签发二维码并创建登录会话

        失败直接向上抛出,不做重试。

        Raises:
            ProxyRequestError: 二维码签发失败
        """
        device_type = device_type or self.device_type
        proxy = proxy or self.proxy

        qr = self.client.get_qr_code(device_type, proxy)
        session = LoginSession(
            w_id=qr.w_id,
            qr_code_url=qr.qr_code_url,
            device_type=device_type,
            proxy_line=proxy,
        )

        logger.info("login_session_started", w_id=qr.w_id, device_type=device_type, proxy=proxy)
        return session

    def poll(self, session: LoginSession) -> LoginStatus:
        """查询一次登录状态

        代理回报的状态若低于会话已到达的状态,返回已到达的状态。

        Raises:
            ProxyRequestError: 查询失败
        """
        status = self.client.check_login(session.w_id)
        session.attempts += 1

        if LOGIN_STATUS_RANK[status.status] < LOGIN_STATUS_RANK[session.last_status.status]:
            logger.debug(
                "login_status_regression_ignored",
                w_id=session.w_id,
                reported=status.status,
                kept=session.last_status.status,
            )
            return session.last_status

        if status.status != session.last_status.status:
            logger.info(
                "login_status_changed",
                w_id=session.w_id,
                previous=session.last_status.status,
                current=status.status,
                attempts=session.attempts,
            )

        session.last_status = status
        return status

    def iter_statuses(
        self,
        session: LoginSession,
        interval: float = 2.0,
        max_attempts: int | None = None,
        deadline: float | None = None,
    ) -> Iterator[LoginStatus]:
        """按间隔轮询并逐个产出状态

        产出 logged_in 后停止。

        Args:
            session: 登录会话
            interval: 两次轮询之间的间隔(秒)
            max_attempts: 最多轮询次数(None 表示不限)
            deadline: 从开始迭代起的最长等待时间(秒,None 表示不限)

        Raises:
            LoginTimeout: 超出次数或时限仍未登录
            ProxyRequestError: 查询失败
        """
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts 必须大于 0")

        started = self._clock()
        made = 0

        while True:
            status = self.poll(session)
            made += 1
            yield status

            if status.status == "logged_in":
                return

            elapsed = self._clock() - started
            if max_attempts is not None and made >= max_attempts:
                self._timeout(session, made, elapsed)
            if deadline is not None and elapsed + interval > deadline:
                self._timeout(session, made, elapsed)

            self._sleep(interval)

    def wait_for_login(
        self,
        session: LoginSession,
        interval: float = 2.0,
        max_attempts: int | None = None,
        deadline: float | None = None,
        on_status: Callable[[LoginStatus], None] | None = None,
    ) -> LoginLoggedIn:
        """轮询直到登录成功

        Args:
            on_status: 每次轮询后的回调(如展示验证链接)

        Raises:
            LoginTimeout: 超出次数或时限仍未登录
        """
        for status in self.iter_statuses(session, interval, max_attempts, deadline):
            if on_status is not None:
                on_status(status)
            if isinstance(status, LoginLoggedIn):
                logger.info(
                    "login_completed",
                    w_id=session.w_id,
                    wc_id_hash=hash_pii(status.wc_id),
                    attempts=session.attempts,
                )
                return status

        # iter_statuses 只会在 logged_in 后正常结束
        raise LoginTimeout(attempts=session.attempts)

    def _timeout(self, session: LoginSession, attempts: int, elapsed: float) -> None:
        logger.warning(
            "login_poll_timeout",
            w_id=session.w_id,
            attempts=attempts,
            elapsed=round(elapsed, 3),
            last_status=session.last_status.status,
        )
        raise LoginTimeout(
            f"登录轮询超时: {attempts} 次 / {elapsed:.1f} 秒后仍为 {session.last_status.status}",
            attempts=attempts,
            elapsed=elapsed,
        )
