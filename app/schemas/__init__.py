from app.schemas.auth import Token, UserCreate, UserLogin, UserResponse
from app.schemas.workspace import WorkspaceCreate, WorkspaceResponse, AvailabilityResponse
from app.schemas.booking import BookingResponse, BookingCreated, BookingListResponse
from app.schemas.membership import MembershipPlanResponse, CreditsResponse
from app.schemas.cafe import MenuItemResponse, OrderCreate, OrderResponse
