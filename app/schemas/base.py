from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """프론트엔드 호환: camelCase 필드명으로 직렬화, snake_case 입력도 허용"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
