from typing import Literal, TypeAlias

HTTPHeaders: TypeAlias = dict[str, str]

HTTPMethod: TypeAlias = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]

BodyFraming: TypeAlias = Literal["empty", "sized", "chunked"]
