"""缩略图概念数据模型.

概念由外部的创意生成服务产出，这里只用于为新图层提供初始文案。
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from thumbcraft.utils.helpers import generate_layer_id


class Concept(BaseModel):
    """缩略图创意概念.

    Attributes:
        id: 概念ID
        title: 概念标题
        hook_text: 缩略图上的吸睛文案
        visual_description: 画面描述（供图像生成使用）
        reasoning: 创意说明
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_layer_id, description="概念ID")
    title: str = Field(default="", description="标题")
    hook_text: str = Field(default="", description="吸睛文案")
    visual_description: str = Field(default="", description="画面描述")
    reasoning: str = Field(default="", description="创意说明")
