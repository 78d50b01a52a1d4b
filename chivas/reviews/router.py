from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from chivas.database import get_db
from chivas.auth.dependencies import get_current_user
from chivas.reviews.schemas import ReviewCreate, ReviewUpdate, Review
from chivas.reviews.service import ReviewService

router = APIRouter()

@router.get("/destinos/{destination_id}/opiniones", response_model=List[Review])
def list_reviews(destination_id: int, db: Session = Depends(get_db)):
    """Reviews of a destination, newest first"""
    return ReviewService(db).list_destination_reviews(destination_id)

@router.post("/opiniones", response_model=Review, status_code=status.HTTP_201_CREATED)
def create_review(
    data: ReviewCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Post a review of a destination"""
    return ReviewService(db).create_review(current_user.id, data)

@router.put("/opiniones/{review_id}", response_model=Review)
def update_review(
    review_id: int,
    data: ReviewUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Edit one of your reviews"""
    return ReviewService(db).update_review(review_id, current_user.id, data)

@router.delete("/opiniones/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
):
    """Delete a review (author or admin)"""
    ReviewService(db).delete_review(review_id, current_user)
