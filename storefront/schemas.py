from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .models import OrderStatus, PaymentMethod, Role

# --- AUTH ---
class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class TokenData(BaseModel):
    email: Optional[str] = None
    role: Optional[str] = None

class GoogleProfile(BaseModel):
    sub: str
    email: EmailStr
    name: Optional[str] = None
    picture: Optional[str] = None
    email_verified: bool = False

# --- USER ---
class UserOut(BaseModel):
    id: int
    email: str
    name: str
    image: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Role
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None

class UserDetails(UserOut):
    orders_count: int
    favorites_count: int
    cart_items_count: int

# --- CATEGORY ---
class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None

class CategoryCreate(CategoryBase):
    pass

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None

class CategoryOut(CategoryBase):
    id: int
    class Config:
        from_attributes = True

# --- PRODUCT ---
class ProductColor(BaseModel):
    name: str = Field(..., min_length=1)
    hex: str = Field(..., min_length=1)
    image: Optional[str] = None

class ProductBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    category_id: int
    images: List[str] = Field(..., min_length=1, max_length=4)
    colors: List[ProductColor] = []
    features: List[str] = []
    whats_in_the_box: List[str] = []
    featured: bool = False

class ProductCreate(ProductBase):
    pass

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    category_id: Optional[int] = None
    images: Optional[List[str]] = Field(None, min_length=1, max_length=4)
    colors: Optional[List[ProductColor]] = None
    features: Optional[List[str]] = None
    whats_in_the_box: Optional[List[str]] = None
    featured: Optional[bool] = None

class ProductOut(ProductBase):
    id: int
    category_id: Optional[int] = None
    images: List[str] = []
    likes: int
    ordered: int
    version: int
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True

class UploadedImages(BaseModel):
    urls: List[str]

# --- CART ---
class CartItemAdd(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)
    color: str = ""

class CartItemUpdate(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=0)
    color: Optional[str] = None

class CartItemOut(BaseModel):
    product_id: int
    product_name: str
    price: float
    image: Optional[str] = None
    quantity: int
    stock: int
    color_name: str = ""

class CartOut(BaseModel):
    items: List[CartItemOut]
    total: float

class CartActionResult(BaseModel):
    success: bool = True
    message: str
    cart_item_count: int

# --- FAVORITES ---
class FavoriteToggle(BaseModel):
    product_id: int

class FavoriteToggleResult(BaseModel):
    success: bool = True
    is_favorite: bool
    likes: int
    message: str

class FavoriteOut(BaseModel):
    product_id: int
    added_at: Optional[datetime] = None
    product: ProductOut

# --- ORDER ---
class BuyNowItem(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)
    color: str = ""

class OrderCreate(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = ""
    email: EmailStr
    phone: str = Field(..., min_length=3)
    address: str = Field(..., min_length=3)
    payment_method: PaymentMethod = PaymentMethod.COD
    # Present for "buy now"; the cart is left untouched
    items: Optional[List[BuyNowItem]] = None

    @field_validator("items")
    @classmethod
    def items_not_empty(cls, value):
        if value is not None and not value:
            raise ValueError("Buy now requires at least one item")
        return value

class OrderItemOut(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    color_name: str
    quantity: int
    unit_price: float
    image: Optional[str] = None
    class Config:
        from_attributes = True

class OrderOut(BaseModel):
    id: int
    user_id: int
    order_number: str
    status: OrderStatus
    payment_method: PaymentMethod
    shipping_address: str
    shipping_phone: str
    customer_name: Optional[str] = None
    email: Optional[str] = None
    total_amount: float
    resend_email_count: int
    created_at: Optional[datetime] = None
    items: List[OrderItemOut]
    class Config:
        from_attributes = True

class AdminOrderOut(OrderOut):
    user: Optional[UserOut] = None

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    tracking_number: Optional[str] = None

# --- NOTIFICATIONS ---
class NotificationOut(BaseModel):
    id: int
    order_id: Optional[int] = None
    message: str
    read: bool
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True

# --- CONTACT ---
class ContactMessage(BaseModel):
    name: str = Field(..., min_length=2, max_length=15)
    email: EmailStr
    subject: str = Field(..., min_length=2, max_length=30)
    category: Optional[str] = None
    message: str = Field(..., min_length=5, max_length=500)

class EmailCheckRequest(BaseModel):
    email: EmailStr

# --- ADMIN ---
class DashboardStats(BaseModel):
    total_products: int
    total_categories: int
    total_orders: int
    total_users: int
    total_revenue: float
    monthly_revenue: float
    last_month_revenue: float
    monthly_growth: float
    product_growth: float
    order_growth: float
    user_growth: float
    low_stock_products: List[ProductOut]

class ActivityLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    action: str
    entity: str
    entity_id: Optional[int] = None
    details: Optional[dict] = None
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True

class Message(BaseModel):
    success: bool = True
    message: str
