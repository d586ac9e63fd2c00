"""
Default reference data loaded into a fresh store.
"""

from decimal import Decimal

DEFAULT_CATEGORIES = [
    ("Cardiology", "Heart and cardiovascular system specialists"),
    ("Dentistry", "Dental care and oral health specialists"),
    ("General Medicine", "Primary care and general health consultations"),
    ("Dermatology", "Skin, hair, and nail specialists"),
    ("Orthopedics", "Bone, joint, and musculoskeletal specialists"),
    ("Pediatrics", "Child healthcare specialists"),
    ("Neurology", "Brain and nervous system specialists"),
    ("Gynecology", "Women's reproductive health specialists"),
    ("Psychiatry", "Mental health and psychiatric care"),
    ("Ophthalmology", "Eye and vision care specialists"),
]

# Doctors reference their category by name.
SAMPLE_DOCTORS = [
    {
        "name": "Dr. John Smith",
        "specialty": "Cardiologist",
        "category": "Cardiology",
        "details": "Experienced heart specialist with expertise in interventional cardiology and heart "
                   "disease prevention. Board-certified with 15 years of practice.",
        "experience_years": 15,
        "consultation_fee": Decimal("150.00"),
        "available_days": "Mon,Tue,Wed,Thu,Fri",
        "available_hours": "09:00-17:00",
    },
    {
        "name": "Dr. Sarah Johnson",
        "specialty": "General Dentist",
        "category": "Dentistry",
        "details": "Comprehensive dental care including preventive, restorative, and cosmetic dentistry. "
                   "Specializes in patient comfort and modern dental techniques.",
        "experience_years": 8,
        "consultation_fee": Decimal("80.00"),
        "available_days": "Mon,Tue,Wed,Thu,Fri,Sat",
        "available_hours": "08:00-18:00",
    },
    {
        "name": "Dr. Michael Brown",
        "specialty": "Family Physician",
        "category": "General Medicine",
        "details": "Primary care physician specializing in family medicine, preventive care, and chronic "
                   "disease management for patients of all ages.",
        "experience_years": 12,
        "consultation_fee": Decimal("100.00"),
        "available_days": "Mon,Tue,Wed,Thu,Fri",
        "available_hours": "08:00-17:00",
    },
    {
        "name": "Dr. Emily Davis",
        "specialty": "Dermatologist",
        "category": "Dermatology",
        "details": "Board-certified dermatologist specializing in medical and cosmetic dermatology, skin "
                   "cancer screening, and advanced dermatological procedures.",
        "experience_years": 10,
        "consultation_fee": Decimal("120.00"),
        "available_days": "Mon,Wed,Fri",
        "available_hours": "10:00-16:00",
    },
    {
        "name": "Dr. Robert Wilson",
        "specialty": "Orthopedic Surgeon",
        "category": "Orthopedics",
        "details": "Orthopedic surgeon specializing in joint replacement, sports medicine, and trauma "
                   "surgery. Expert in minimally invasive techniques.",
        "experience_years": 18,
        "consultation_fee": Decimal("200.00"),
        "available_days": "Tue,Thu",
        "available_hours": "09:00-15:00",
    },
    {
        "name": "Dr. Lisa Anderson",
        "specialty": "Pediatrician",
        "category": "Pediatrics",
        "details": "Board-certified pediatrician providing comprehensive healthcare for children from "
                   "newborn to adolescent. Specializes in child development and immunizations.",
        "experience_years": 9,
        "consultation_fee": Decimal("90.00"),
        "available_days": "Mon,Tue,Wed,Thu,Fri",
        "available_hours": "08:00-16:00",
    },
    {
        "name": "Dr. David Martinez",
        "specialty": "Neurologist",
        "category": "Neurology",
        "details": "Neurologist specializing in the diagnosis and treatment of brain, spinal cord, and "
                   "nervous system disorders. Expert in headache management and epilepsy.",
        "experience_years": 14,
        "consultation_fee": Decimal("180.00"),
        "available_days": "Mon,Wed,Fri",
        "available_hours": "09:00-17:00",
    },
    {
        "name": "Dr. Jennifer Taylor",
        "specialty": "Gynecologist",
        "category": "Gynecology",
        "details": "Board-certified OB/GYN providing comprehensive women's healthcare including routine "
                   "exams, prenatal care, and gynecological procedures.",
        "experience_years": 11,
        "consultation_fee": Decimal("130.00"),
        "available_days": "Mon,Tue,Thu,Fri",
        "available_hours": "09:00-16:00",
    },
    {
        "name": "Dr. Mark Thompson",
        "specialty": "Psychiatrist",
        "category": "Psychiatry",
        "details": "Board-certified psychiatrist specializing in adult mental health, anxiety, depression, "
                   "and psychiatric medication management.",
        "experience_years": 13,
        "consultation_fee": Decimal("160.00"),
        "available_days": "Mon,Tue,Wed,Thu",
        "available_hours": "10:00-18:00",
    },
    {
        "name": "Dr. Anna Rodriguez",
        "specialty": "Ophthalmologist",
        "category": "Ophthalmology",
        "details": "Comprehensive eye care specialist offering medical and surgical treatment for eye "
                   "conditions, including cataract and retinal surgery.",
        "experience_years": 16,
        "consultation_fee": Decimal("140.00"),
        "available_days": "Tue,Wed,Thu,Fri",
        "available_hours": "08:00-16:00",
    },
]
