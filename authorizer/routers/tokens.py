from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from authorizer.keystone.accessor import ValidatorAccessor
from authorizer.schemas.tokens import TokenValidationRequest, TokenValidationResponse
from authorizer.security.dependencies import check_token, get_accessor, require_valid_token

router = APIRouter(prefix="/v1/tokens", tags=["tokens"])


@router.post("/validate", response_model=TokenValidationResponse)
def validate(
    body: TokenValidationRequest,
    accessor: ValidatorAccessor = Depends(get_accessor),
) -> TokenValidationResponse:
    return TokenValidationResponse(valid=check_token(accessor, body.token))


@router.get("/check", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_valid_token)])
def check() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT)
