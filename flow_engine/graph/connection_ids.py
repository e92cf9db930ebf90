"""连线 ID 约定。

- 自动连线（校验服务推断）：`auto:` 前缀 + 四元组（源节点/源端口/目标节点/目标端口）的确定性编码，
  同一条推断连线无论应用多少次都得到同一个 ID；
- 手动连线（用户绘制）：`conn_` 前缀 + 毫秒时间戳 + 随机后缀。

两种前缀互不相交，因此仅凭 ID 即可识别自动连线，无需旁路表。
"""

from __future__ import annotations

import time
import uuid
from urllib.parse import quote

AUTO_CONNECTION_ID_PREFIX = "auto:"
MANUAL_CONNECTION_ID_PREFIX = "conn_"


def _encode_part(value: str) -> str:
    # 分隔符 ':' 会被转义，保证不同四元组不会拼出同一个 ID
    return quote(str(value), safe="")


def make_auto_connection_id(
    source_node_id: str,
    source_port: str,
    target_node_id: str,
    target_port: str,
) -> str:
    parts = (source_node_id, source_port, target_node_id, target_port)
    return AUTO_CONNECTION_ID_PREFIX + ":".join(_encode_part(part) for part in parts)


def make_manual_connection_id() -> str:
    timestamp_ms = int(time.time() * 1000)
    return f"{MANUAL_CONNECTION_ID_PREFIX}{timestamp_ms}_{uuid.uuid4().hex[:7]}"


def is_auto_connection_id(connection_id: str) -> bool:
    return str(connection_id or "").startswith(AUTO_CONNECTION_ID_PREFIX)
