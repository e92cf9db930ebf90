"""
布局常量定义模块

集中管理分层布局使用的默认尺寸与间距。
"""

# 节点默认尺寸
NODE_WIDTH_DEFAULT: float = 200.0
NODE_HEIGHT_DEFAULT: float = 80.0

# 列间距 / 行间距
HORIZONTAL_SPACING_DEFAULT: float = 100.0
VERTICAL_SPACING_DEFAULT: float = 60.0

# 画布外边距
CANVAS_PADDING_DEFAULT: float = 50.0

# 空图时的最小视口
EMPTY_CANVAS_WIDTH: float = 800.0
EMPTY_CANVAS_HEIGHT: float = 600.0

# 连线贝塞尔曲线控制点的最大水平偏移
BEZIER_CONTROL_OFFSET_MAX: float = 100.0
BEZIER_CONTROL_OFFSET_RATIO: float = 0.5

# 连线命中测试：沿曲线采样点数与距离阈值（像素）
EDGE_HIT_SAMPLES: int = 20
EDGE_HIT_THRESHOLD_DEFAULT: float = 10.0

# 适配视口时的最大缩放（不放大超过 100%）
FIT_MAX_SCALE: float = 1.0
