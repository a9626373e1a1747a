"""
Database Schemas for the Gymwear storefront and content API

Each Pydantic model corresponds to one MongoDB collection.
Collection name is the lowercase of the class name.
Request bodies that do not map onto a collection live at the bottom.
"""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

ProductStatus = Literal["published", "draft", "out_of_stock"]
ProductType = Literal["single", "variant"]
PaymentMethod = Literal["stripe", "paypal", "cod"]
PaymentStatus = Literal["pending", "processing", "completed", "failed", "refunded"]
OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled", "refunded"]
Role = Literal["user", "admin", "moderator"]
Platform = Literal["gymwear", "gymfolio"]
Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

ORDER_STATUSES = ["pending", "processing", "shipped", "delivered", "cancelled", "refunded"]


# ---------- Users ----------

class User(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    password_hash: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Role = "user"
    is_active: bool = True
    total_purchases: int = 0
    last_login: Optional[datetime] = None


# ---------- Catalogue ----------

class Variant(BaseModel):
    variant_id: str
    color: str
    size: str
    price: float = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    sku: Optional[str] = None
    discounted_price: Optional[float] = Field(None, ge=0)


class ColorMedia(BaseModel):
    thumbnail_url: Optional[str] = None
    banner_urls: List[str] = Field(default_factory=list)


class Product(BaseModel):
    name: str
    slug: str
    category: str
    price: float = Field(..., ge=0)
    discounted_price: Optional[float] = Field(None, ge=0)
    stock: int = Field(..., ge=0)
    status: ProductStatus = "draft"
    featured: bool = False
    thumbnail_url: Optional[str] = None
    banner_urls: List[str] = Field(default_factory=list, max_length=5)
    product_type: ProductType = "single"
    variants: List[Variant] = Field(default_factory=list)
    # keys are normalized colour names, see variants.color_key
    color_media: Optional[Dict[str, ColorMedia]] = None
    description: Optional[str] = None
    short_description: Optional[str] = Field(None, max_length=500)
    features: Optional[str] = None
    meta_title: Optional[str] = Field(None, max_length=120)
    meta_description: Optional[str] = Field(None, max_length=320)
    meta_keywords: Optional[str] = None
    meta_schema: Optional[str] = None


class Category(BaseModel):
    name: str
    slug: str
    description: str = ""
    thumbnail_url: Optional[str] = None
    banner_url: Optional[str] = None
    active: bool = True
    featured: bool = False


class Color(BaseModel):
    name: str
    slug: str
    hex: str = ""
    active: bool = True


class Size(BaseModel):
    name: str
    slug: str
    active: bool = True


# ---------- Cart / Wishlist ----------

class VariantSelector(BaseModel):
    variant_id: Optional[str] = None
    variant_sku: Optional[str] = None


# ---------- Orders ----------

class Address(BaseModel):
    full_name: str
    email: EmailStr
    phone: str
    address: str
    city: str
    state: str
    zip_code: str
    country: str = "United States"


class OrderItem(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    size: Optional[str] = None
    color: Optional[str] = None


class Order(BaseModel):
    user_id: Optional[str] = None
    order_number: str
    items: List[OrderItem]
    shipping_address: Address
    billing_address: Address
    payment_method: PaymentMethod = "stripe"
    payment_status: PaymentStatus = "pending"
    order_status: OrderStatus = "pending"
    stripe_payment_intent_id: Optional[str] = None
    stripe_session_id: Optional[str] = None
    subtotal: float
    shipping_cost: float = 0
    tax: float = 0
    discount: float = 0
    total: float
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None


# ---------- Blog ----------

class Author(BaseModel):
    name: str = Field(..., max_length=100)
    email: EmailStr
    slug: Optional[str] = None
    bio: str = Field("", max_length=500)
    avatar: Optional[str] = None
    active: bool = True
    blog_count: int = 0


class Blogcategory(BaseModel):
    name: str
    slug: str
    description: str = ""
    thumbnail_url: Optional[str] = None
    banner_url: Optional[str] = None
    active: bool = True
    featured: bool = False
    platform: Platform = "gymwear"


class Blog(BaseModel):
    title: str = Field(..., max_length=200)
    content: str
    category_id: str
    status: Literal["published", "draft"] = "draft"
    featured: bool = False
    image: str
    thumbnail: Optional[str] = None
    author_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    views: int = 0
    slug: str
    meta_title: Optional[str] = Field(None, max_length=120)
    meta_description: Optional[str] = Field(None, max_length=320)
    meta_keywords: Optional[str] = None
    meta_schema: Optional[str] = None
    platform: Platform = "gymwear"


class Bloghero(BaseModel):
    title: str = Field(..., max_length=200)
    subtitle: str = Field(..., max_length=500)
    background_image: str
    primary_button_text: str = Field(..., max_length=50)
    primary_button_link: str
    secondary_button_text: str = Field(..., max_length=50)
    secondary_button_link: str
    is_active: bool = False
    sort_order: int = 0


# ---------- Gym content ----------

class Availability(BaseModel):
    day: Weekday
    start_time: str
    end_time: str


class Trainer(BaseModel):
    name: str = Field(..., max_length=100)
    slug: Optional[str] = None
    role: str = Field(..., max_length=150)
    bio: Optional[str] = Field(None, max_length=2000)
    image: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    specialties: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    experience: Optional[int] = Field(None, ge=0)
    social: Dict[str, str] = Field(default_factory=dict)
    availability: List[Availability] = Field(default_factory=list)
    is_active: bool = True
    is_featured: bool = False
    order: int = Field(0, ge=0)
    rating: float = Field(0, ge=0, le=5)


class ScheduleSlot(BaseModel):
    day: Weekday
    start_time: str
    end_time: str
    instructor_id: Optional[str] = None
    instructor_name: Optional[str] = None


class Gymclass(BaseModel):
    name: str = Field(..., max_length=100)
    slug: Optional[str] = None
    description: str = Field(..., max_length=5000)
    short_description: Optional[str] = Field(None, max_length=500)
    thumbnail: Optional[str] = None
    video_url: Optional[str] = None
    gallery: List[str] = Field(default_factory=list)
    schedule: List[ScheduleSlot] = Field(default_factory=list)
    duration: Optional[int] = Field(None, ge=1, le=300)
    difficulty: Literal["Beginner", "Intermediate", "Advanced", "All Levels"] = "All Levels"
    capacity: int = Field(20, ge=1)
    features: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    category: Literal["Yoga", "Cardio", "Strength", "Boxing", "HIIT", "Dance", "Martial Arts", "Other"] = "Other"
    tags: List[str] = Field(default_factory=list)
    is_active: bool = True
    is_featured: bool = False
    order: int = Field(0, ge=0)
    price: float = Field(0, ge=0)
    currency: str = "PKR"


class GalleryImage(BaseModel):
    title: str
    image: str
    href: Optional[str] = None


class Theme(BaseModel):
    key: str
    title: str = Field(..., max_length=100)
    tagline: str = Field(..., max_length=200)
    description: str = Field(..., max_length=500)
    cover: str
    accent: str = "from-stone-900/90 to-stone-500/10"
    gallery: List[GalleryImage] = Field(..., min_length=4, max_length=12)
    is_active: bool = True
    order: int = Field(0, ge=0)


class Heroslide(BaseModel):
    title: str = Field(..., max_length=100)
    description: str = Field(..., max_length=500)
    image_url: str
    button_text: Optional[str] = Field(None, max_length=30)
    button_link: Optional[str] = Field(None, max_length=200)
    second_button_text: Optional[str] = Field(None, max_length=30)
    second_button_link: Optional[str] = Field(None, max_length=200)
    is_active: bool = True
    order: int = Field(0, ge=0)
    aria_label: Optional[str] = Field(None, max_length=100)
    platform: Platform = "gymwear"


class Settings(BaseModel):
    site_name: str = "GymWear"
    site_url: str = "https://gymwear.example.com"
    logo_url: str = "/images/logo.png"
    timezone: str = "UTC+05:00"
    date_format: Literal["MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD"] = "MM/DD/YYYY"
    email_notifications: bool = True
    marketing_emails: bool = False
    security_alerts: bool = True
    two_factor_auth: bool = False
    currency: Literal["USD", "EUR", "GBP", "JPY"] = "USD"
    payment_methods: List[Literal["credit_card", "paypal", "stripe", "razorpay"]] = ["credit_card", "paypal"]
    youtube_url: str = ""
    facebook_url: str = ""
    instagram_url: str = ""
    is_active: bool = True
    version: str = "1.0.0"


class Newsletter(BaseModel):
    email: EmailStr
    status: Literal["active", "unsubscribed"] = "active"
    source: Literal["blog", "homepage", "sidebar", "footer"] = "blog"
    subscribed_at: Optional[datetime] = None
    unsubscribed_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class Contact(BaseModel):
    full_name: str = Field(..., max_length=100)
    email_address: EmailStr
    phone_number: Optional[str] = Field(None, max_length=20)
    subject: str = Field("General Inquiry", max_length=200)
    message: str = Field(..., max_length=2000)
    status: Literal["new", "in_progress", "resolved", "closed"] = "new"
    priority: Literal["low", "medium", "high", "urgent"] = "medium"
    category: Literal["general", "support", "returns", "wholesale", "technical", "feedback"] = "general"
    source: str = "contact-form"
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    assigned_to: Optional[str] = None
    admin_notes: List[dict] = Field(default_factory=list)
    response_email_sent: bool = False
    response_email_sent_at: Optional[datetime] = None


# ---------- Request bodies ----------

class SignupBody(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginBody(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdateBody(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)


class AddToCartBody(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)
    variant: Optional[dict] = None


class UpdateCartItemBody(BaseModel):
    quantity: int


class AddToWishlistBody(BaseModel):
    product_id: str


class CheckoutLine(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = Field(..., ge=1)
    size: Optional[str] = None
    color: Optional[str] = None
    price: float = Field(..., ge=0)


class CheckoutSessionBody(BaseModel):
    cart_items: List[CheckoutLine]
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None


class PaymentIntentBody(BaseModel):
    amount: float
    currency: str = "usd"
    metadata: Dict[str, str] = Field(default_factory=dict)


class OrderStatusBody(BaseModel):
    status: Optional[str] = None


class RefundBody(BaseModel):
    amount: Optional[float] = None
    reason: Optional[str] = None


class DisplayOrderBody(BaseModel):
    order: Optional[int] = None


class SubscribeBody(BaseModel):
    email: EmailStr
    source: Literal["blog", "homepage", "sidebar", "footer"] = "blog"


class UnsubscribeBody(BaseModel):
    email: EmailStr


class ContactBody(BaseModel):
    full_name: Optional[str] = None
    email_address: Optional[str] = None
    phone_number: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    category: str = "general"


class ContactStatusBody(BaseModel):
    status: Optional[str] = None


class ContactPriorityBody(BaseModel):
    priority: Optional[str] = None


class ContactNoteBody(BaseModel):
    note: Optional[str] = None


class ContactAssignBody(BaseModel):
    assigned_to: Optional[str] = None
