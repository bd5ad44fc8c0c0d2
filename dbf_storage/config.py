"""
存储层常量与运行期配置。
格式常量对应磁盘上的固定布局；编码/日志相关项可由环境变量覆盖。
"""
import locale
import os

# --- 文件格式常量 ---
TABLE_DESCRIPTOR_LENGTH = 32   # 表描述符（文件头前 32 字节）
FIELD_DESCRIPTOR_LENGTH = 32   # 每个字段描述符 32 字节
FIELD_NAME_LENGTH = 11
DBC_LENGTH = 263               # 带内嵌数据库目录（DBC）的表在终止符后多出的字节
TERMINATOR_LENGTH = 1
HEADER_TERMINATOR = 0x0D
END_OF_FILE_MARK = 0x1A

VERSION_NUMBER_OFFSET = 0
RECORDS_COUNT_OFFSET = 4
HEADER_LENGTH_OFFSET = 8
RECORD_LENGTH_OFFSET = 10
LANGUAGE_DRIVER_OFFSET = 29
FIELD_LENGTH_OFFSET = 16
FIELD_PRECISION_OFFSET = 17

# 新建表时写入的版本号（3 = 无 memo 的普通表）
DEFAULT_VERSION = 3
DEFAULT_DBC_VERSION = 48

# --- 编码 ---
# 代码页未设置/无法识别时使用的文本编码
FALLBACK_ENCODING = os.environ.get("MINI_DBF_ENCODING") or locale.getpreferredencoding(False)

# --- 日志 ---
LOG_DIR = "__logs__"
LOG_FILE = "dbf.log"
LOG_LEVEL = os.environ.get("MINI_DBF_LOG_LEVEL", "INFO").upper()
