from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from promisepoint.api.deps import db, actor
from promisepoint.schemas.loan_type import LoanTypeCreate, LoanTypeOut, LoanTypeUpdate
from promisepoint.services import loan_types as svc

router = APIRouter(prefix="/loans/types", tags=["loan-types"])


@router.get("", response_model=list[LoanTypeOut])
def list_loan_types(
    category: str | None = Query(None),
    is_active: bool | None = Query(None),
    user_type: str | None = Query(None),
    s: Session = Depends(db),
):
    return svc.list_loan_types(s, category=category, is_active=is_active, user_type=user_type)


@router.post("", response_model=LoanTypeOut)
def create_loan_type(body: LoanTypeCreate, s: Session = Depends(db), who: str = Depends(actor)):
    return svc.create_loan_type(s, body, actor=who)


@router.get("/{loan_type_id}", response_model=LoanTypeOut)
def get_loan_type(loan_type_id: int, s: Session = Depends(db)):
    return svc.get_loan_type(s, loan_type_id)


@router.put("/{loan_type_id}", response_model=LoanTypeOut)
def update_loan_type(loan_type_id: int, body: LoanTypeUpdate, s: Session = Depends(db), who: str = Depends(actor)):
    return svc.update_loan_type(s, loan_type_id, body, actor=who)


@router.patch("/{loan_type_id}/toggle-active", response_model=LoanTypeOut)
def toggle_loan_type_active(loan_type_id: int, s: Session = Depends(db), who: str = Depends(actor)):
    return svc.toggle_loan_type_active(s, loan_type_id, actor=who)


@router.delete("/{loan_type_id}", response_model=LoanTypeOut)
def delete_loan_type(loan_type_id: int, s: Session = Depends(db), who: str = Depends(actor)):
    # Deactivates only; loans keep pointing at the type.
    return svc.deactivate_loan_type(s, loan_type_id, actor=who)
