"""全局设置模块 - 控制编辑器校验/布局/持久化行为和调试选项

这个模块提供了一个集中的配置系统，所有设置项都是大写类属性。
支持从 JSON 配置文件加载和保存设置。

使用方法：
    from flow_engine.configs.settings import settings
    from flow_engine.utils.logging.logger import log_info

    if settings.LAYOUT_DEBUG_PRINT:
        log_info("调试信息")

    # 保存设置
    settings.save()

    # 加载设置
    settings.load()
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from flow_engine.utils.logging.logger import log_info, log_warn

DEFAULT_USER_SETTINGS_RELATIVE_PATH = Path("app_runtime/user_settings.json")


class Settings:
    """全局设置类

    所有设置项都是类属性，可以直接访问和修改。
    """

    # ========== 调试选项 ==========

    # 信息级日志：控制 `flow_engine.utils.logging.logger.log_info` 是否输出
    # 默认 False（关闭），仅保留 warn/error
    LOG_VERBOSE: bool = False

    # 是否在布局时打印列分配、断环等调试信息
    LAYOUT_DEBUG_PRINT: bool = False

    # 校验调度详细日志（签名变化、请求发出/落地、基线推进）
    VALIDATOR_VERBOSE: bool = False

    # ========== 校验调度 ==========

    # 结构变化后的静默期（毫秒）：静默期内的多次变更只触发一次校验请求
    VALIDATION_DEBOUNCE_MS: int = 500

    # 是否在编辑时自动触发远端结构校验
    # False：仅在保存时校验
    VALIDATION_AUTO_ENABLED: bool = True

    # 关闭编辑会话时等待校验线程退出的最长时间（毫秒）
    VALIDATION_WORKER_WAIT_MS: int = 2000

    # ========== 远端服务 ==========

    # 流程服务根地址（校验 / 保存 / 部署共用）
    FLOW_API_BASE_URL: str = "http://localhost:8080"

    # 单次 HTTP 请求超时（秒）
    FLOW_API_TIMEOUT_SECONDS: float = 10.0

    # ========== 编辑历史 ==========

    # 撤销/重做栈的最大快照数
    FLOW_HISTORY_MAX_SIZE: int = 10

    # 配置文件路径（相对于workspace）
    _config_file: Optional[Path] = None
    # 工作区根目录（由 set_config_path(workspace_root) 显式注入）
    _workspace_root: Optional[Path] = None

    def __repr__(self) -> str:
        """返回所有设置的字符串表示"""
        return f"Settings({self._get_all_settings()})"

    @classmethod
    def set_config_path(cls, workspace_path: Path):
        """设置配置文件路径

        Args:
            workspace_path: 工作空间根目录
        """
        config_file = workspace_path / DEFAULT_USER_SETTINGS_RELATIVE_PATH
        log_info(
            "[BOOT][Settings] set_config_path: workspace_path={} -> config_file={}",
            workspace_path,
            config_file,
        )
        cls._config_file = config_file
        cls._workspace_root = workspace_path.resolve()

    def _get_all_settings(self) -> Dict[str, Any]:
        """获取所有设置项的字典

        注意：从实例获取属性，以支持实例属性覆盖类属性的情况
        """
        return {
            key: getattr(self, key)
            for key in dir(self.__class__)
            if not key.startswith('_') and key.isupper()
        }

    def save(self) -> bool:
        """保存设置到配置文件

        Returns:
            是否保存成功
        """
        if self.__class__._config_file is None:
            log_warn("[Settings] 配置文件路径未设置，无法保存设置")
            return False

        settings_dict = self._get_all_settings()
        self.__class__._config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.__class__._config_file, 'w', encoding='utf-8') as file:
            json.dump(settings_dict, file, indent=2, ensure_ascii=False)
        return True

    def load(self) -> bool:
        """从配置文件加载设置

        Returns:
            是否加载成功
        """
        config_file = self.__class__._config_file
        if config_file is None:
            log_info("[BOOT][Settings] load: _config_file 未设置，跳过加载，使用类默认值")
            return False

        if not config_file.exists():
            log_info("[BOOT][Settings] load: 配置文件不存在（{}），跳过加载，使用类默认值", config_file)
            return False

        log_info("[BOOT][Settings] load: 准备从 {} 加载配置", config_file)
        with open(config_file, 'r', encoding='utf-8') as file:
            settings_dict = json.load(file)

        applied_count = 0
        for key, value in settings_dict.items():
            if hasattr(self.__class__, key) and key.isupper():
                setattr(self, key, value)
                applied_count += 1

        log_info("[BOOT][Settings] load: 配置加载完成，共应用 {} 个键", applied_count)
        return True

    @classmethod
    def reset_to_defaults(cls):
        """重置所有设置为默认值"""
        cls.LOG_VERBOSE = False
        cls.LAYOUT_DEBUG_PRINT = False
        cls.VALIDATOR_VERBOSE = False
        cls.VALIDATION_DEBOUNCE_MS = 500
        cls.VALIDATION_AUTO_ENABLED = True
        cls.VALIDATION_WORKER_WAIT_MS = 2000
        cls.FLOW_API_BASE_URL = "http://localhost:8080"
        cls.FLOW_API_TIMEOUT_SECONDS = 10.0
        cls.FLOW_HISTORY_MAX_SIZE = 10
        log_info("[Settings] 已重置所有设置为默认值")

    @classmethod
    def enable_debug_mode(cls):
        """启用所有调试选项（用于开发调试）"""
        cls.LOG_VERBOSE = True
        cls.LAYOUT_DEBUG_PRINT = True
        cls.VALIDATOR_VERBOSE = True
        log_info("[Settings] 已启用调试模式：所有详细日志已打开")

    @classmethod
    def disable_debug_mode(cls):
        """禁用所有调试选项（恢复默认）"""
        cls.LOG_VERBOSE = False
        cls.LAYOUT_DEBUG_PRINT = False
        cls.VALIDATOR_VERBOSE = False


# 全局设置实例
settings = Settings()
