"""领域层模型与纯函数。

包含：
- skills: 技能目录、分类映射与评分/汇总函数。
- models: ChatMessage 消息模型。
- conversation: 单会话消息日志与点赞摘录。
- profile: 用户画像计数器与技能分数。
- intent: 输入意图识别。
- exceptions: 业务异常类型定义。
"""
