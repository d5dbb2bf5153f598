"""领域层模型与异常。

包含：
- models: ConversationMessage / DeltaEvent / Frame 等数据结构。
- exceptions: 业务异常类型定义。
"""
