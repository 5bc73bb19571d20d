from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
import ledger
from dependencies import get_db
from models import Borrower, BorrowerIn, BorrowerUpdate, LendingRecord

router = APIRouter()


@router.get("/borrowers", response_model=list[Borrower])
def list_borrowers_api(db: Session = Depends(get_db)):
    return crud.list_borrowers(db)


@router.post("/borrowers", response_model=Borrower, status_code=201)
def create_borrower_api(body: BorrowerIn, db: Session = Depends(get_db)):
    return crud.create_borrower(db, body)


@router.get("/borrowers/{borrower_id}", response_model=Borrower)
def get_borrower_api(borrower_id: str, db: Session = Depends(get_db)):
    borrower = crud.get_borrower(db, borrower_id)
    if not borrower:
        raise HTTPException(status_code=404, detail="borrower not found")
    return borrower


@router.patch("/borrowers/{borrower_id}", response_model=Borrower)
def update_borrower_api(borrower_id: str, body: BorrowerUpdate, db: Session = Depends(get_db)):
    updated = crud.update_borrower(db, borrower_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="borrower not found")
    return updated


@router.delete("/borrowers/{borrower_id}", status_code=204)
def delete_borrower_api(borrower_id: str, db: Session = Depends(get_db)):
    if not crud.delete_borrower(db, borrower_id):
        raise HTTPException(status_code=404, detail="borrower not found")
    return None


# works for deleted borrowers too: the records carry their own snapshot
@router.get("/borrowers/{borrower_id}/history", response_model=list[LendingRecord])
def borrower_history_api(borrower_id: str, db: Session = Depends(get_db)):
    return ledger.list_borrower_history(db, borrower_id)
